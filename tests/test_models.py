"""
Unit tests for the wizard data model.
"""

import pytest

from annotation_pipeline.models import BoundingBox, LabelCategories, SessionState, STEPS, StepId


def test_steps_are_fixed_sequence():
    assert [step.id for step in STEPS] == [
        StepId.UPLOAD,
        StepId.NARRATIVE,
        StepId.LABELS,
        StepId.BOUNDING_BOXES,
        StepId.FILTER_BOXES,
        StepId.MASKS,
        StepId.SUMMARY,
    ]
    assert STEPS[3].name == "Detect Objects (DINO)"


def test_initial_state_is_empty():
    state = SessionState()
    assert state.step_index == 0
    assert state.current_step.id == StepId.UPLOAD
    assert not state.is_terminal
    assert state.narrative is None
    assert state.labels is None
    assert state.bounding_boxes is None


def test_terminal_state():
    state = SessionState(step_index=len(STEPS) - 1)
    assert state.is_terminal
    assert state.current_step.id == StepId.SUMMARY


def test_bounding_box_from_dict():
    box = BoundingBox.from_dict({"label": "cell phone use", "box": [0.45, 0.55, 0.15, 0.2]})
    assert box.label == "cell phone use"
    assert box.box == (0.45, 0.55, 0.15, 0.2)
    assert box.to_dict() == {"label": "cell phone use", "box": [0.45, 0.55, 0.15, 0.2]}


def test_bounding_box_clamps_to_unit_range():
    box = BoundingBox.from_dict({"label": "truck", "box": [-0.1, 0.5, 1.4, 1]})
    assert box.box == (0.0, 0.5, 1.0, 1.0)


@pytest.mark.parametrize("data", [
    {"label": "truck", "box": [0.1, 0.2, 0.3]},
    {"label": "truck", "box": [0.1, 0.2, 0.3, "wide"]},
    {"label": "truck", "box": [0.1, 0.2, 0.3, True]},
    {"label": 7, "box": [0.1, 0.2, 0.3, 0.4]},
    {"box": [0.1, 0.2, 0.3, 0.4]},
    ["truck", [0.1, 0.2, 0.3, 0.4]],
])
def test_bounding_box_rejects_malformed(data):
    with pytest.raises(ValueError):
        BoundingBox.from_dict(data)


def test_label_categories_wire_format():
    labels = LabelCategories.from_dict({
        "driverMonitoring": ["cell phone use", "drowsiness"],
        "roadEnvironment": ["car"],
    })
    assert labels.driver_monitoring == ("cell phone use", "drowsiness")
    assert labels.road_environment == ("car",)
    assert labels.logistics == ()
    assert labels.all_labels() == ["cell phone use", "drowsiness", "car"]
    assert labels.to_dict() == {
        "driverMonitoring": ["cell phone use", "drowsiness"],
        "roadEnvironment": ["car"],
        "logistics": [],
    }


def test_label_categories_allow_duplicates_across_buckets():
    labels = LabelCategories.from_dict({"driverMonitoring": ["truck"], "roadEnvironment": ["truck"]})
    assert labels.all_labels() == ["truck", "truck"]


@pytest.mark.parametrize("data", [
    {"driverMonitoring": "cell phone use"},
    {"logistics": [1, 2]},
    "labels",
])
def test_label_categories_reject_malformed(data):
    with pytest.raises(ValueError):
        LabelCategories.from_dict(data)
