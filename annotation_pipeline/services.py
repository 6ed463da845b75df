"""
Generative service boundary.
Provides the live OpenAI vision service and a canned mock that satisfies the same contract.
"""

import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from .config import Settings
from .errors import RemoteCallError
from .models import BoundingBox, LabelCategories, MediaFile
from .prompts import (
    BOUNDING_BOXES_PROMPT,
    BOUNDING_BOXES_SCHEMA,
    LABELS_PROMPT,
    LABELS_SCHEMA,
    NARRATIVE_PROMPT,
    SYSTEM_PROMPT,
    PromptTemplate,
)

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Available service variants."""
    OPENAI = "openai"
    MOCK = "mock"


class VisionService(ABC):
    """Capability used by the step actions that need a generative model."""

    provider: LLMProvider

    @property
    def mock_mode(self) -> bool:
        return self.provider == LLMProvider.MOCK

    @abstractmethod
    async def generate_narrative(self, image: MediaFile) -> str:
        """Describe the scene in the image as free text."""

    @abstractmethod
    async def propose_labels(self, narrative: str) -> LabelCategories:
        """Propose categorized labels for a scene narrative."""

    @abstractmethod
    async def generate_bounding_boxes(self, image: MediaFile, labels: Sequence[str]) -> List[BoundingBox]:
        """Locate the given labels in the image."""


def parse_label_categories(raw: str) -> LabelCategories:
    """Parse a structured-output response into label categories."""
    try:
        return LabelCategories.from_dict(json.loads(raw))
    except (TypeError, ValueError) as e:  # JSONDecodeError is a ValueError
        raise RemoteCallError(f"Malformed label response: {e}") from e


def parse_bounding_boxes(raw: str) -> List[BoundingBox]:
    """Parse a structured-output response into boxes; accepts a bare list or ``{"detections": [...]}``."""
    try:
        data = json.loads(raw)
        if isinstance(data, dict):
            data = data.get("detections")
        if not isinstance(data, list):
            raise ValueError("expected a list of detections")
        return [BoundingBox.from_dict(item) for item in data]
    except (TypeError, ValueError) as e:
        raise RemoteCallError(f"Malformed bounding box response: {e}") from e


class OpenAIVisionService(VisionService):
    """Live service backed by the OpenAI chat completions API."""

    provider = LLMProvider.OPENAI

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        # No retries: a failed call is reported and the user may run the step again.
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @staticmethod
    def _image_part(image: MediaFile) -> Dict[str, Any]:
        base64_image = base64.b64encode(image.data).decode('utf-8')
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{image.mime_type};base64,{base64_image}"},
        }

    async def _call_openai(
        self,
        prompt: PromptTemplate,
        text: str,
        image: Optional[MediaFile] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Send one chat completion request and return the message content."""
        content: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        if image is not None:
            content.append(self._image_part(image))

        request: Dict[str, Any] = {
            "model": prompt.params.get("model", self.model),
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
            "temperature": prompt.params.get("temperature", 0.7),
            "max_tokens": prompt.params.get("max_tokens", 1000),
        }
        if schema is not None:
            request["response_format"] = {"type": "json_schema", "json_schema": schema}

        try:
            completion = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            logger.error(f"OpenAI API error: {str(e)}")
            raise RemoteCallError(f"Generative service call failed: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise RemoteCallError("Generative service returned an empty response")
        return completion.choices[0].message.content

    async def generate_narrative(self, image: MediaFile) -> str:
        text = await self._call_openai(NARRATIVE_PROMPT, NARRATIVE_PROMPT.format(), image=image)
        return text.strip()

    async def propose_labels(self, narrative: str) -> LabelCategories:
        raw = await self._call_openai(
            LABELS_PROMPT,
            LABELS_PROMPT.format(narrative=narrative),
            schema=LABELS_SCHEMA,
        )
        return parse_label_categories(raw)

    async def generate_bounding_boxes(self, image: MediaFile, labels: Sequence[str]) -> List[BoundingBox]:
        raw = await self._call_openai(
            BOUNDING_BOXES_PROMPT,
            BOUNDING_BOXES_PROMPT.format(labels=json.dumps(list(labels))),
            image=image,
            schema=BOUNDING_BOXES_SCHEMA,
        )
        return parse_bounding_boxes(raw)


MOCK_NARRATIVE = (
    "A driver is operating a commercial truck, looking at their mobile phone while driving on a highway. "
    "The seatbelt appears to be fastened."
)

MOCK_LABELS = LabelCategories(
    driver_monitoring=("cell phone use", "hands on wheel", "eyes on road", "drowsiness", "seatbelt fastened"),
    road_environment=("car", "truck", "lane markings"),
    logistics=(),
)

MOCK_BOUNDING_BOXES = (
    BoundingBox("cell phone use", (0.45, 0.55, 0.15, 0.2)),
    BoundingBox("seatbelt fastened", (0.5, 0.4, 0.25, 0.5)),
    BoundingBox("hands on wheel", (0.3, 0.7, 0.3, 0.25)),
)


class MockVisionService(VisionService):
    """Offline service returning canned data after a simulated delay."""

    provider = LLMProvider.MOCK

    def __init__(self, delay: float = 1.0):
        self.delay = delay

    async def _simulate_latency(self):
        if self.delay > 0:
            await asyncio.sleep(self.delay)

    async def generate_narrative(self, image: MediaFile) -> str:
        await self._simulate_latency()
        return MOCK_NARRATIVE

    async def propose_labels(self, narrative: str) -> LabelCategories:
        await self._simulate_latency()
        return MOCK_LABELS

    async def generate_bounding_boxes(self, image: MediaFile, labels: Sequence[str]) -> List[BoundingBox]:
        await self._simulate_latency()
        return list(MOCK_BOUNDING_BOXES)


def create_service(settings: Settings) -> VisionService:
    """Pick the live service when a credential is configured, else fall back to mock mode."""
    if settings.mock_mode:
        logger.warning("No OPENAI_API_KEY found. Running in mock mode with simulated data.")
        return MockVisionService(delay=settings.mock_delay)
    logger.info(f"Using OpenAI vision service with model {settings.openai_model}")
    return OpenAIVisionService(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.openai_timeout,
    )
