"""
Step 5: Mask generation module
Simulates mask propagation by selecting the single most critical detection.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from .errors import PreconditionError
from .models import BoundingBox, SessionState

logger = logging.getLogger(__name__)

CRITICAL_KEYWORD = "cell phone"


def select_masked_label(boxes: Sequence[BoundingBox]) -> Optional[str]:
    """First label mentioning a cell phone (case-insensitive), else the first label, else None."""
    for box in boxes:
        if CRITICAL_KEYWORD in box.label.lower():
            return box.label
    return boxes[0].label if boxes else None


async def execute_step(state: SessionState, service=None) -> SessionState:
    """Execute mask generation step. Purely local; ``service`` is unused."""
    logger.debug("Step 5: Generating masks...")
    if state.bounding_boxes is None:
        raise PreconditionError("No detections found. Run object detection first.")

    masked_label = select_masked_label(state.bounding_boxes)
    logger.info(f"Selected label for masking: {masked_label}")
    return replace(state, masked_label=masked_label)
