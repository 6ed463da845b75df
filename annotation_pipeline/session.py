"""
Wizard session.
Owns the single mutable reference to a user's session state and enforces one operation in flight.
"""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Optional

from . import Step_0_upload
from .errors import AnnotationPipelineError, ExtractionError, PreconditionError, UnsupportedMediaError
from .frame_extractor import FrameExtractor
from .models import MediaKind, SessionState
from .sequencer import StepSequencer

logger = logging.getLogger(__name__)


class WizardSession:
    """
    One user's run through the wizard.

    Each restart bumps a generation counter. Work started under an older
    generation (a step call or a frame extraction) is allowed to finish, but
    its result or error is discarded instead of being committed.
    """

    def __init__(
        self,
        sequencer: StepSequencer,
        extractor: Optional[FrameExtractor] = None,
        executor: Optional[Executor] = None,
    ):
        """
        Args:
            sequencer: Step sequencer with the injected generative service
            extractor: Frame extractor for video uploads
            executor: Pool running blocking frame extraction (loop default when None)
        """
        self.sequencer = sequencer
        self.extractor = extractor or FrameExtractor()
        self.executor = executor
        self._state = SessionState()
        self._error: Optional[str] = None
        self._generation = 0
        self._pending_steps = 0
        self._pending_extractions = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        """Last user-visible error message, cleared by the next successful operation."""
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def busy(self) -> bool:
        return self._pending_steps > 0

    @property
    def extracting(self) -> bool:
        return self._pending_extractions > 0

    @property
    def mock_mode(self) -> bool:
        return self.sequencer.mock_mode

    def restart(self) -> None:
        """
        Clear all outputs and the step index; in-flight work becomes stale.

        Calls already in flight stay pending until they finish.
        """
        self._generation += 1
        self._state = SessionState()
        self._error = None
        logger.debug(f"Session restarted (generation {self._generation})")

    def _refuse(self, message: str) -> PreconditionError:
        self._error = message
        return PreconditionError(message)

    async def upload(self, data: bytes, mime_type: str, filename: str = "") -> SessionState:
        """
        Start a new run with an uploaded file.

        The file is validated before anything is reset, so a rejected upload
        leaves the current run as it was.

        Raises:
            UnsupportedMediaError: file is not an image or video
            ExtractionError: no frame could be extracted from the video
        """
        try:
            new_state = Step_0_upload.accept_upload(data, mime_type, filename)
        except UnsupportedMediaError as e:
            self._error = str(e)
            raise

        self.restart()
        generation = self._generation
        self._state = new_state
        if new_state.media_kind != MediaKind.VIDEO:
            return self._state

        self._pending_extractions += 1
        loop = asyncio.get_running_loop()
        try:
            frame = await loop.run_in_executor(
                self.executor,
                self.extractor.extract,
                data,
                Step_0_upload.video_suffix(new_state.media),
            )
        except ExtractionError as e:
            if generation != self._generation:
                logger.info(f"Discarding extraction failure from a restarted session: {e}")
                return self._state
            self._error = f"Error extracting frame from video: {e}"
            logger.error(self._error)
            raise
        finally:
            self._pending_extractions -= 1

        if generation != self._generation:
            logger.info("Discarding extracted frame from a restarted session")
            return self._state
        self._state = Step_0_upload.attach_frame(self._state, frame)
        return self._state

    async def run_step(self) -> SessionState:
        """
        Run the current step and commit its result.

        Raises:
            PreconditionError: another operation is in flight or a prior output is missing
            RemoteCallError: the generative service failed
        """
        if self._pending_extractions:
            raise self._refuse("Processing video... Please wait for frame extraction to finish.")
        if self._pending_steps:
            raise self._refuse("A step is already running. Please wait for it to finish.")

        generation = self._generation
        self._pending_steps += 1
        self._error = None
        try:
            new_state = await self.sequencer.advance(self._state)
        except AnnotationPipelineError as e:
            if generation != self._generation:
                logger.info(f"Discarding step failure from a restarted session: {e}")
                return self._state
            self._error = f"An error occurred: {e}"
            logger.warning(self._error)
            raise
        finally:
            self._pending_steps -= 1

        if generation != self._generation:
            logger.info("Discarding step result from a restarted session")
            return self._state
        self._state = new_state
        return new_state
