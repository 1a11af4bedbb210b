"""
Interaction Events
===================

The common output of both interaction detectors.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional

import numpy as np
import pandas as pd
from shapely.geometry import Point

SOURCES = ("prism", "pet")
LOCATIONS = ("in", "out")

EVENT_COLUMNS = [
    "x",
    "y",
    "source",
    "pet",
    "zone_id",
    "classification",
    "bike_id",
    "car_id",
    "t",
]


@dataclass(frozen=True)
class InteractionEvent:
    """A detected bike-car interaction.

    Attributes:
        x: Event x coordinate.
        y: Event y coordinate.
        source: Detector that produced the event ("prism" or "pet").
        pet: Post-encroachment time in seconds (PET detector only).
        zone_id: Zone the event falls in, set by the zone join.
        classification: "in" or "out", set by the zone join.
        bike_id: Track id of the bike involved.
        car_id: Track id of the car involved.
        t: Representative event time (seconds).
    """

    x: float
    y: float
    source: str
    pet: Optional[float] = None
    zone_id: Optional[str] = None
    classification: Optional[str] = None
    bike_id: Optional[str] = None
    car_id: Optional[str] = None
    t: Optional[float] = None

    def __post_init__(self):
        if self.source not in SOURCES:
            raise ValueError(f"Unknown event source {self.source!r}, expected one of {SOURCES}")

    @property
    def geometry(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return asdict(self)


def event_coords(events: Iterable[InteractionEvent]) -> np.ndarray:
    """(N, 2) array of event locations."""
    coords = [(e.x, e.y) for e in events]
    if not coords:
        return np.empty((0, 2))
    return np.array(coords, dtype=np.float64)


def events_to_frame(events: Iterable[InteractionEvent]) -> pd.DataFrame:
    """Tabulate events, one row per event."""
    rows = [e.to_dict() for e in events]
    return pd.DataFrame(rows, columns=EVENT_COLUMNS)
