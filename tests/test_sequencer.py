"""
Unit tests for the step sequencer.

Walks the full step sequence with the mock service and checks that failures
leave the state and index untouched.
"""

import asyncio

import pytest

from annotation_pipeline import StepSequencer
from annotation_pipeline.errors import PreconditionError, RemoteCallError
from annotation_pipeline.models import LabelCategories, SessionState, STEPS, StepId
from annotation_pipeline.services import MOCK_LABELS, MOCK_NARRATIVE, MockVisionService


class FailingService(MockVisionService):
    """Mock whose remote calls all fail."""

    def __init__(self):
        super().__init__(delay=0)
        self.calls = 0

    async def generate_narrative(self, image):
        self.calls += 1
        raise RemoteCallError("service unavailable")

    async def propose_labels(self, narrative):
        self.calls += 1
        raise RemoteCallError("service unavailable")

    async def generate_bounding_boxes(self, image, labels):
        self.calls += 1
        raise RemoteCallError("service unavailable")


class RecordingService(MockVisionService):
    def __init__(self):
        super().__init__(delay=0)
        self.box_labels = None

    async def generate_bounding_boxes(self, image, labels):
        self.box_labels = list(labels)
        return await super().generate_bounding_boxes(image, labels)


@pytest.fixture
def uploaded(image_file):
    return SessionState(step_index=1, media=image_file, analysis_image=image_file)


def test_full_walk_with_mock(sequencer, uploaded):
    state = uploaded
    indexes = [state.step_index]
    while not state.is_terminal:
        state = asyncio.run(sequencer.advance(state))
        indexes.append(state.step_index)

    assert indexes == [1, 2, 3, 4, 5, 6]
    assert state.current_step.id == StepId.SUMMARY
    assert state.narrative == MOCK_NARRATIVE
    assert state.labels == MOCK_LABELS
    assert [b.label for b in state.bounding_boxes] == ["cell phone use", "seatbelt fastened", "hands on wheel"]
    assert state.filtered_labels == ("cell phone use", "seatbelt fastened", "hands on wheel")
    assert state.masked_label == "cell phone use"


def test_advance_does_not_mutate_input(sequencer, uploaded):
    result = asyncio.run(sequencer.advance(uploaded))
    assert uploaded.step_index == 1
    assert uploaded.narrative is None
    assert result.step_index == 2
    assert result.narrative == MOCK_NARRATIVE


def test_advance_before_upload(sequencer):
    with pytest.raises(PreconditionError):
        asyncio.run(sequencer.advance(SessionState()))


def test_advance_at_summary_is_refused(sequencer):
    with pytest.raises(PreconditionError):
        asyncio.run(sequencer.advance(SessionState(step_index=len(STEPS) - 1)))


def test_narrative_requires_analysis_image(sequencer, image_file):
    # A video upload whose frame has not been extracted yet
    state = SessionState(step_index=1, media=image_file, analysis_image=None)
    with pytest.raises(PreconditionError):
        asyncio.run(sequencer.advance(state))
    assert state.step_index == 1


def test_detection_before_labels_fails(sequencer, uploaded):
    state = SessionState(
        step_index=3,
        media=uploaded.media,
        analysis_image=uploaded.analysis_image,
        narrative=MOCK_NARRATIVE,
    )
    with pytest.raises(PreconditionError):
        asyncio.run(sequencer.advance(state))
    assert state.step_index == 3
    assert state.bounding_boxes is None


def test_detection_receives_flattened_labels(uploaded):
    service = RecordingService()
    labels = LabelCategories(
        driver_monitoring=("cell phone use",),
        road_environment=("car",),
        logistics=("pallet",),
    )
    state = SessionState(step_index=3, analysis_image=uploaded.analysis_image, narrative="n", labels=labels)
    result = asyncio.run(StepSequencer(service).advance(state))
    assert service.box_labels == ["cell phone use", "car", "pallet"]
    assert result.step_index == 4


def test_remote_failure_leaves_state_unchanged(uploaded):
    service = FailingService()
    sequencer = StepSequencer(service)
    with pytest.raises(RemoteCallError):
        asyncio.run(sequencer.advance(uploaded))
    assert uploaded.step_index == 1
    assert uploaded.narrative is None
    assert service.calls == 1


def test_mock_mode_flag(sequencer):
    assert sequencer.mock_mode
