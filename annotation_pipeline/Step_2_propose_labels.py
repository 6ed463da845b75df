"""
Step 2: Label proposal module
Asks the generative service for label vocabularies grouped by category.
"""

import logging
from dataclasses import replace

from .errors import PreconditionError
from .models import SessionState
from .services import VisionService

logger = logging.getLogger(__name__)


async def execute_step(state: SessionState, service: VisionService) -> SessionState:
    """Execute label proposal step; requires the narrative."""
    logger.debug("Step 2: Proposing labels...")
    if state.analysis_image is None:
        raise PreconditionError("No image frame to process. Please upload a file.")
    if not state.narrative:
        raise PreconditionError("Narrative not found. Generate the narrative first.")

    labels = await service.propose_labels(state.narrative)
    logger.info(
        f"Proposed {len(labels.driver_monitoring)} driver-monitoring, "
        f"{len(labels.road_environment)} road-environment and {len(labels.logistics)} logistics labels"
    )
    return replace(state, labels=labels)
