"""
Step 3: Object detection module
Simulates open-vocabulary detection by asking the generative service for boxes of every proposed label.
"""

import logging
from dataclasses import replace

from .errors import PreconditionError
from .models import SessionState
from .services import VisionService

logger = logging.getLogger(__name__)


async def execute_step(state: SessionState, service: VisionService) -> SessionState:
    """
    Execute object detection step.

    Args:
        state: Current session state; must hold labels and an analysis image
        service: Generative service

    Returns:
        State with ``bounding_boxes`` populated
    """
    logger.debug("Step 3: Detecting objects...")
    if state.analysis_image is None:
        raise PreconditionError("No image frame to process. Please upload a file.")
    if state.labels is None:
        raise PreconditionError("Labels not found. Propose labels first.")

    all_labels = state.labels.all_labels()
    boxes = await service.generate_bounding_boxes(state.analysis_image, all_labels)
    logger.info(f"Detected {len(boxes)} boxes for {len(all_labels)} labels")
    return replace(state, bounding_boxes=tuple(boxes))
