"""
Module for managing prompts and structured-output schemas sent to the generative service.
"""

from typing import Any, Dict, Optional


class PromptTemplate:
    """Class to manage prompt templates."""
    def __init__(self, template: str, params: Optional[Dict[str, Any]] = None):
        self.template = template
        self.params = params or {}

    def format(self, **kwargs) -> str:
        return self.template.format(**kwargs)


SYSTEM_PROMPT = """You are a computer-vision annotation assistant for a commercial trucking fleet.
You review dash-cam and in-cab camera frames and help build training data for driver-safety models.
Be concise and factual. Only report what is visible in the frame."""

NARRATIVE_PROMPT = PromptTemplate(
    template="Analyze this image from a commercial trucking perspective. Describe the scene in a concise "
             "narrative, focusing on driver behavior, surroundings, and potential safety events.",
    params={"temperature": 0.4, "max_tokens": 500},
)

LABELS_PROMPT = PromptTemplate(
    template='Based on the scene narrative: "{narrative}", propose a vocabulary of labels relevant to trucking. '
             "Categorize them into 'driverMonitoring', 'roadEnvironment', and 'logistics'.",
    params={"temperature": 0.2, "max_tokens": 500},
)

BOUNDING_BOXES_PROMPT = PromptTemplate(
    template="For the following labels, provide bounding box coordinates for each one found in the image. "
             "Use normalized coordinates [x, y, width, height]. Labels: {labels}",
    params={"temperature": 0.0, "max_tokens": 1000},
)

LABELS_SCHEMA = {
    "name": "label_categories",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "driverMonitoring": {"type": "array", "items": {"type": "string"}},
            "roadEnvironment": {"type": "array", "items": {"type": "string"}},
            "logistics": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["driverMonitoring", "roadEnvironment", "logistics"],
        "additionalProperties": False,
    },
}

# Structured outputs need an object at the top level, so the list is wrapped.
BOUNDING_BOXES_SCHEMA = {
    "name": "detections",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "detections": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "label": {"type": "string"},
                        "box": {"type": "array", "items": {"type": "number"}},
                    },
                    "required": ["label", "box"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["detections"],
        "additionalProperties": False,
    },
}
