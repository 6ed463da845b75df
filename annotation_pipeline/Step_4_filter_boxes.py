"""
Step 4: Box filtering module
Keeps only detections whose label is a driver-monitoring label.
"""

import logging
from dataclasses import replace
from typing import Iterable, List

from .errors import PreconditionError
from .models import BoundingBox, SessionState

logger = logging.getLogger(__name__)


def filter_labels(driver_monitoring: Iterable[str], boxes: Iterable[BoundingBox]) -> List[str]:
    """Labels present both in ``driver_monitoring`` and among the detections, in detection order."""
    important = set(driver_monitoring)
    filtered = []
    for box in boxes:
        if box.label in important and box.label not in filtered:
            filtered.append(box.label)
    return filtered


async def execute_step(state: SessionState, service=None) -> SessionState:
    """Execute box filtering step. Purely local; ``service`` is unused."""
    logger.debug("Step 4: Filtering boxes...")
    if state.labels is None:
        raise PreconditionError("Labels not found. Propose labels first.")
    if state.bounding_boxes is None:
        raise PreconditionError("No detections found. Run object detection first.")

    filtered = filter_labels(state.labels.driver_monitoring, state.bounding_boxes)
    logger.info(f"Kept {len(filtered)} of {len(state.bounding_boxes)} detections: {filtered}")
    return replace(state, filtered_labels=tuple(filtered))
