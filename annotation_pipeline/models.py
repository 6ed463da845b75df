"""
Data model for the annotation wizard.
Defines the fixed step sequence and the immutable session state threaded through every step.
"""

from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Dict, List, Optional, Tuple


class StepId(Enum):
    """Identifiers of the wizard steps, in execution order."""
    UPLOAD = "UPLOAD"
    NARRATIVE = "NARRATIVE"
    LABELS = "LABELS"
    BOUNDING_BOXES = "BOUNDING_BOXES"
    FILTER_BOXES = "FILTER_BOXES"
    MASKS = "MASKS"
    SUMMARY = "SUMMARY"


@dataclass(frozen=True)
class Step:
    id: StepId
    name: str
    title: str = ""
    description: str = ""
    action_label: str = ""


STEPS: Tuple[Step, ...] = (
    Step(
        StepId.UPLOAD,
        "Upload Frame",
        title="Upload a Frame",
        description="Send an image (PNG, JPG) or a short video (MP4) from an in-cab or road-facing camera.",
    ),
    Step(
        StepId.NARRATIVE,
        "Generate Narrative",
        title="1. LLM Drafts the Scene Narrative",
        description="The LLM analyzes the video frame to generate a contextual description of the events, "
                    "focusing on relevant actions for fleet management.",
        action_label="Generate Narrative",
    ),
    Step(
        StepId.LABELS,
        "Propose Labels",
        title="2. LLM Proposes Label Vocabularies",
        description="Based on the narrative, the LLM proposes a set of relevant labels, categorized for clarity "
                    "(e.g., Driver Monitoring, Road Environment).",
        action_label="Propose Labels",
    ),
    Step(
        StepId.BOUNDING_BOXES,
        "Detect Objects (DINO)",
        title="3. Grounding DINO Supplies Bounding Boxes",
        description="A vision model like Grounding-DINO takes the proposed labels and identifies potential "
                    "matches in the frame, drawing bounding boxes around them.",
        action_label="Simulate DINO Detection",
    ),
    Step(
        StepId.FILTER_BOXES,
        "Filter Boxes (LLM)",
        title="4. LLM Filters Boxes",
        description="The LLM uses the original narrative to add context, filtering out irrelevant or "
                    "low-confidence boxes to improve accuracy.",
        action_label="Filter with LLM Context",
    ),
    Step(
        StepId.MASKS,
        "Generate Masks (SAM2)",
        title="5. SAM2 Propagates High-Confidence Masklets",
        description="For high-confidence objects, a model like SAM2 creates precise, pixel-level masks and "
                    "tracks them across frames to analyze event duration.",
        action_label="Simulate SAM2 Segmentation",
    ),
    Step(
        StepId.SUMMARY,
        "Deploy Model (YOLO)",
        title="6. Distilled YOLO Runs at the Edge",
        description="The labeled data trains a compact YOLO model, which is deployed to an in-cab device for "
                    "real-time alerts without cloud dependency.",
        action_label="Start Over",
    ),
)


class MediaKind(Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaFile:
    """Raw file bytes plus the declared MIME type."""
    data: bytes = field(repr=False)
    mime_type: str
    filename: str = ""


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class BoundingBox:
    """Normalized [x, y, width, height] rectangle locating a label in the image."""
    label: str
    box: Tuple[float, float, float, float]

    @classmethod
    def from_dict(cls, data: Dict) -> "BoundingBox":
        """
        Build a box from its wire form ``{"label": str, "box": [x, y, w, h]}``.

        Raises:
            ValueError: if the label is not a string or the box is not four numbers
        """
        if not isinstance(data, dict):
            raise ValueError(f"Bounding box must be an object, got {type(data).__name__}")
        label = data.get("label")
        box = data.get("box")
        if not isinstance(label, str):
            raise ValueError(f"Bounding box label must be a string, got {label!r}")
        if not isinstance(box, (list, tuple)) or len(box) != 4:
            raise ValueError(f"Bounding box for '{label}' must have 4 coordinates, got {box!r}")
        # bool is a Real subclass
        if any(isinstance(v, bool) or not isinstance(v, Real) for v in box):
            raise ValueError(f"Bounding box for '{label}' has non-numeric coordinates: {box!r}")
        return cls(label=label, box=tuple(_clamp_unit(v) for v in box))

    def to_dict(self) -> Dict:
        return {"label": self.label, "box": list(self.box)}


@dataclass(frozen=True)
class LabelCategories:
    """Proposed labels grouped into the three fleet-safety buckets."""
    driver_monitoring: Tuple[str, ...] = ()
    road_environment: Tuple[str, ...] = ()
    logistics: Tuple[str, ...] = ()

    WIRE_KEYS = {
        "driverMonitoring": "driver_monitoring",
        "roadEnvironment": "road_environment",
        "logistics": "logistics",
    }

    @classmethod
    def from_dict(cls, data: Dict) -> "LabelCategories":
        """Build categories from the ``driverMonitoring/roadEnvironment/logistics`` wire keys."""
        if not isinstance(data, dict):
            raise ValueError(f"Label categories must be an object, got {type(data).__name__}")
        buckets = {}
        for wire_key, attr in cls.WIRE_KEYS.items():
            values = data.get(wire_key, [])
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ValueError(f"'{wire_key}' must be a list of strings, got {values!r}")
            buckets[attr] = tuple(values)
        return cls(**buckets)

    def to_dict(self) -> Dict[str, List[str]]:
        return {wire_key: list(getattr(self, attr)) for wire_key, attr in self.WIRE_KEYS.items()}

    def all_labels(self) -> List[str]:
        """All labels flattened in bucket order."""
        return [*self.driver_monitoring, *self.road_environment, *self.logistics]


@dataclass(frozen=True)
class SessionState:
    """
    State of one wizard run.

    Outputs stay ``None`` until the step producing them has executed.
    Instances are never mutated; steps return updated copies via ``dataclasses.replace``.
    """
    step_index: int = 0
    media: Optional[MediaFile] = None
    media_kind: Optional[MediaKind] = None
    analysis_image: Optional[MediaFile] = None
    narrative: Optional[str] = None
    labels: Optional[LabelCategories] = None
    bounding_boxes: Optional[Tuple[BoundingBox, ...]] = None
    filtered_labels: Optional[Tuple[str, ...]] = None
    masked_label: Optional[str] = None

    @property
    def current_step(self) -> Step:
        return STEPS[self.step_index]

    @property
    def is_terminal(self) -> bool:
        return self.step_index == len(STEPS) - 1
