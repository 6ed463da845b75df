"""
Shared fixtures for the annotation pipeline tests.
"""

import cv2
import numpy as np
import pytest

from annotation_pipeline import MockVisionService, StepSequencer, WizardSession
from annotation_pipeline.models import MediaFile


def encode_jpeg(width=64, height=48, color=(40, 80, 160)) -> bytes:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = color
    ok, buffer = cv2.imencode(".jpg", image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def jpeg_bytes():
    return encode_jpeg()


@pytest.fixture
def image_file(jpeg_bytes):
    return MediaFile(data=jpeg_bytes, mime_type="image/jpeg", filename="cab.jpg")


@pytest.fixture
def mock_service():
    return MockVisionService(delay=0)


@pytest.fixture
def sequencer(mock_service):
    return StepSequencer(mock_service)


@pytest.fixture
def session(sequencer):
    return WizardSession(sequencer)


@pytest.fixture
def make_jpeg():
    return encode_jpeg
