"""
Step 1: Narrative generation module
Drafts a free-text scene description from the analysis image.
"""

import logging
from dataclasses import replace

from .errors import PreconditionError
from .models import SessionState
from .services import VisionService

logger = logging.getLogger(__name__)


async def execute_step(state: SessionState, service: VisionService) -> SessionState:
    """
    Execute narrative generation step.

    Args:
        state: Current session state; must hold an analysis image
        service: Generative service

    Returns:
        State with ``narrative`` populated
    """
    logger.debug("Step 1: Generating scene narrative...")
    if state.analysis_image is None:
        raise PreconditionError("No image frame to process. Please upload a file.")

    narrative = await service.generate_narrative(state.analysis_image)
    logger.info(f"Generated narrative ({len(narrative)} chars)")
    return replace(state, narrative=narrative)
