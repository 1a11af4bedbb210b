"""
Zone Join
==========

Attach interaction zones to interaction events and count how many
events fall inside the predicted zones.

An event is ``"in"`` when it intersects any zone polygon and ``"out"``
otherwise. When zones overlap, the first matching zone in input order is
reported.

Example::

    from interzone.comparison import count_by_location, join_zones

    joined = join_zones(events, study_area.zones)
    print(count_by_location(joined))
    #   location  count  percentage
    # 0       in     12        60.0
    # 1      out      8        40.0
"""

import dataclasses
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import shapely
from shapely import STRtree

from interzone.core.study_area import Zone
from interzone.detection.events import LOCATIONS, InteractionEvent, event_coords


def lookup_zones(coords: np.ndarray, zones: Sequence[Zone]) -> List[Optional[str]]:
    """Return the first zone id containing each coordinate, or None.

    Args:
        coords: (N, 2) array of locations.
        zones: Zone polygons, in priority order.
    """
    n = len(coords)
    if n == 0:
        return []
    if not zones:
        return [None] * n

    tree = STRtree([z.geometry for z in zones])
    point_idx, zone_idx = tree.query(shapely.points(coords), predicate="intersects")

    first = np.full(n, -1, dtype=np.int64)
    for p, z in zip(point_idx, zone_idx):
        if first[p] < 0 or z < first[p]:
            first[p] = z
    return [zones[z].id if z >= 0 else None for z in first]


def join_zones(
    events: Sequence[InteractionEvent], zones: Sequence[Zone]
) -> List[InteractionEvent]:
    """Classify events as inside or outside the interaction zones.

    Returns:
        New events with ``zone_id`` and ``classification`` set.
    """
    zone_ids = lookup_zones(event_coords(events), zones)
    return [
        dataclasses.replace(
            e,
            zone_id=zone_id,
            classification="out" if zone_id is None else "in",
        )
        for e, zone_id in zip(events, zone_ids)
    ]


def count_by_location(events: Sequence[InteractionEvent]) -> pd.DataFrame:
    """Count and percentage of joined events per location.

    Both ``in`` and ``out`` rows are always present. Percentages are 0.0
    when there are no events.

    Raises:
        ValueError: If an event has not been joined to the zones.
    """
    counts = dict.fromkeys(LOCATIONS, 0)
    for e in events:
        if e.classification not in counts:
            raise ValueError(
                "Events must be joined to zones before counting; "
                f"got classification {e.classification!r}"
            )
        counts[e.classification] += 1

    total = sum(counts.values())
    return pd.DataFrame(
        {
            "location": list(counts),
            "count": list(counts.values()),
            "percentage": [
                100.0 * c / total if total else 0.0 for c in counts.values()
            ],
        }
    )
