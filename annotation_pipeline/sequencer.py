"""
Step sequencer.
Runs the action bound to the current wizard step and moves the index forward on success.
"""

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Dict

from . import (
    Step_1_generate_narrative,
    Step_2_propose_labels,
    Step_3_detect_objects,
    Step_4_filter_boxes,
    Step_5_generate_masks,
)
from .errors import PreconditionError
from .models import SessionState, StepId
from .services import VisionService

logger = logging.getLogger(__name__)

StepAction = Callable[[SessionState, VisionService], Awaitable[SessionState]]

STEP_ACTIONS: Dict[StepId, StepAction] = {
    StepId.NARRATIVE: Step_1_generate_narrative.execute_step,
    StepId.LABELS: Step_2_propose_labels.execute_step,
    StepId.BOUNDING_BOXES: Step_3_detect_objects.execute_step,
    StepId.FILTER_BOXES: Step_4_filter_boxes.execute_step,
    StepId.MASKS: Step_5_generate_masks.execute_step,
}


class StepSequencer:
    """Advances a session state through the fixed step sequence."""

    def __init__(self, service: VisionService):
        self.service = service

    @property
    def mock_mode(self) -> bool:
        return self.service.mock_mode

    async def advance(self, state: SessionState) -> SessionState:
        """
        Execute the current step's action.

        The input state is left untouched; on failure nothing is returned and
        the caller keeps the old state, so the step can be retried.

        Returns:
            New state with the step output populated and the index incremented by one

        Raises:
            PreconditionError: no upload yet, terminal step, or a missing prior output
            RemoteCallError: the generative service failed
        """
        step = state.current_step
        if step.id == StepId.UPLOAD:
            raise PreconditionError("No image frame to process. Please upload a file.")
        if state.is_terminal:
            raise PreconditionError("The run is complete. Start over to process another file.")

        action = STEP_ACTIONS[step.id]
        logger.info(f"Running step {state.step_index}: {step.name}")
        updated = await action(state, self.service)
        return replace(updated, step_index=state.step_index + 1)
