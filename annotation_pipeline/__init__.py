"""
Annotation pipeline package initialization.
Provides the wizard steps, frame extraction and session handling for the fleet safety annotation demo.
"""

from .errors import (
    AnnotationPipelineError,
    ExtractionError,
    PreconditionError,
    RemoteCallError,
    UnsupportedMediaError,
)
from .models import BoundingBox, LabelCategories, MediaFile, MediaKind, SessionState, Step, StepId, STEPS
from .services import LLMProvider, MockVisionService, OpenAIVisionService, VisionService, create_service
from .frame_extractor import FrameExtractor
from .sequencer import StepSequencer
from .session import WizardSession
from . import (
    Step_0_upload,
    Step_1_generate_narrative,
    Step_2_propose_labels,
    Step_3_detect_objects,
    Step_4_filter_boxes,
    Step_5_generate_masks,
    Step_6_deploy_summary
)

__all__ = [
    'AnnotationPipelineError',
    'ExtractionError',
    'PreconditionError',
    'RemoteCallError',
    'UnsupportedMediaError',
    'BoundingBox',
    'LabelCategories',
    'MediaFile',
    'MediaKind',
    'SessionState',
    'Step',
    'StepId',
    'STEPS',
    'LLMProvider',
    'MockVisionService',
    'OpenAIVisionService',
    'VisionService',
    'create_service',
    'FrameExtractor',
    'StepSequencer',
    'WizardSession',
    'Step_0_upload',
    'Step_1_generate_narrative',
    'Step_2_propose_labels',
    'Step_3_detect_objects',
    'Step_4_filter_boxes',
    'Step_5_generate_masks',
    'Step_6_deploy_summary'
]
