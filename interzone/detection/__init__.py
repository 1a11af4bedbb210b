"""
Interaction detectors.

Two independent detectors turn bike and car trajectories into discrete
interaction events: the space-time prism detector (joint spatial and
temporal proximity of observations) and the post-encroachment time
detector (crossing paths passed within a short time of each other).
"""

from interzone.detection.events import InteractionEvent, event_coords, events_to_frame
from interzone.detection.prism import PrismDetector
from interzone.detection.pet import PETDetector

__all__ = [
    "InteractionEvent",
    "event_coords",
    "events_to_frame",
    "PrismDetector",
    "PETDetector",
]
