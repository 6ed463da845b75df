"""
Tests for single-frame extraction from video.
"""

import errno
import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest

from annotation_pipeline.errors import ExtractionError
from annotation_pipeline.frame_extractor import FrameExtractor, seek_time


class FakeCapture:
    """Stands in for cv2.VideoCapture and records what the extractor asks of it."""

    instances = []

    def __init__(self, path, fps=10.0, frame_count=5, opened=True, reads=None, shape=(48, 64, 3)):
        self.path = path
        self.props = {cv2.CAP_PROP_FPS: fps, cv2.CAP_PROP_FRAME_COUNT: frame_count}
        self.opened = opened
        self.reads = list(reads) if reads is not None else [True, True]
        self.shape = shape
        self.seeks = []
        self.released = False
        self.path_existed = Path(path).exists()
        FakeCapture.instances.append(self)

    def isOpened(self):
        return self.opened

    def get(self, prop):
        return self.props.get(prop, 0)

    def set(self, prop, value):
        self.seeks.append((prop, value))
        return True

    def read(self):
        ok = self.reads.pop(0) if self.reads else False
        if not ok:
            return False, None
        return True, np.full(self.shape, 128, dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture(monkeypatch):
    FakeCapture.instances = []

    def install(**kwargs):
        monkeypatch.setattr(cv2, "VideoCapture", lambda path: FakeCapture(path, **kwargs))
        return FakeCapture.instances

    return install


@pytest.mark.parametrize("duration, expected", [
    (0.5, 0.25),
    (10.0, 1.0),
    (2.0, 1.0),
    (1.5, 0.75),
])
def test_seek_time(duration, expected):
    assert seek_time(duration) == pytest.approx(expected)


def test_short_video_seeks_to_half_duration(fake_capture):
    instances = fake_capture(fps=10.0, frame_count=5)  # 0.5s
    frame = FrameExtractor().extract(b"video")

    cap = instances[0]
    assert cap.seeks == [(cv2.CAP_PROP_POS_MSEC, 250.0)]
    decoded = cv2.imdecode(np.frombuffer(frame, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert decoded.shape[:2] == (48, 64)


def test_long_video_seeks_to_one_second(fake_capture):
    instances = fake_capture(fps=30.0, frame_count=300)  # 10s
    FrameExtractor().extract(b"video")
    assert instances[0].seeks == [(cv2.CAP_PROP_POS_MSEC, 1000.0)]


def test_unknown_duration_uses_first_frame(fake_capture):
    instances = fake_capture(fps=0.0, frame_count=0, reads=[True])
    assert FrameExtractor().extract(b"video")
    assert instances[0].seeks == []


def test_resources_released_on_success(fake_capture):
    instances = fake_capture()
    FrameExtractor().extract(b"video", suffix=".mov")

    cap = instances[0]
    assert cap.path.endswith(".mov")
    assert cap.path_existed
    assert cap.released
    assert not Path(cap.path).exists()


@pytest.mark.parametrize("kwargs, message", [
    ({"opened": False}, "could not open video"),
    ({"reads": [False]}, "no decodable frame"),
    ({"reads": [True, False]}, "no frame at 0.25s"),
    ({"shape": (0, 0, 3)}, "empty frame"),
])
def test_failures_release_resources(fake_capture, kwargs, message):
    instances = fake_capture(**kwargs)
    with pytest.raises(ExtractionError) as excinfo:
        FrameExtractor().extract(b"video")

    assert message in str(excinfo.value)
    assert excinfo.value.cause
    cap = instances[0]
    assert cap.released
    assert not Path(cap.path).exists()


def test_seek_is_by_time_at_fractional_fps(fake_capture):
    instances = fake_capture(fps=29.97, frame_count=60)
    FrameExtractor().extract(b"video")
    assert instances[0].seeks == [(cv2.CAP_PROP_POS_MSEC, 1000.0)]


class FullDiskFile:
    """Temporary file whose write fails as if the disk were full."""

    def __init__(self, path):
        self.name = str(path)
        path.write_bytes(b"")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def write(self, data):
        raise OSError(errno.ENOSPC, "No space left on device")


def test_temp_file_write_failure_is_extraction_error(tmp_path, monkeypatch, fake_capture):
    instances = fake_capture()
    spool = tmp_path / "upload.mp4"
    monkeypatch.setattr(tempfile, "NamedTemporaryFile", lambda **kwargs: FullDiskFile(spool))

    with pytest.raises(ExtractionError) as excinfo:
        FrameExtractor().extract(b"video")

    assert "No space left on device" in str(excinfo.value)
    assert not spool.exists()
    assert instances == []


def test_extract_from_real_video(tmp_path):
    video_path = tmp_path / "clip.avi"
    width, height, fps = 64, 48, 10.0
    writer = cv2.VideoWriter(str(video_path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (width, height))
    assert writer.isOpened()
    for i in range(10):
        writer.write(np.full((height, width, 3), i * 20, dtype=np.uint8))
    writer.release()

    frame = FrameExtractor(jpeg_quality=90).extract(video_path.read_bytes(), suffix=".avi")
    decoded = cv2.imdecode(np.frombuffer(frame, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert decoded.shape == (height, width, 3)


def test_extract_garbage_bytes():
    with pytest.raises(ExtractionError):
        FrameExtractor().extract(b"not a video at all")
