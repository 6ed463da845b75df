"""
Frame extraction module
Samples one representative still frame from an uploaded video for analysis.
"""

import logging
import tempfile
from pathlib import Path

import cv2
import numpy as np

from .errors import ExtractionError

logger = logging.getLogger(__name__)

SEEK_TARGET_SECONDS = 1.0


def seek_time(duration: float, target: float = SEEK_TARGET_SECONDS) -> float:
    """
    Position to sample, skipping likely black or transition frames at the start.

    Args:
        duration: Video duration in seconds
        target: Preferred position in seconds

    Returns:
        ``min(target, duration / 2)``
    """
    return min(target, duration / 2)


class FrameExtractor:
    """Extracts a single JPEG still from video bytes using OpenCV."""

    def __init__(self, jpeg_quality: int = 90, seek_target: float = SEEK_TARGET_SECONDS):
        """
        Initialize frame extractor.

        Args:
            jpeg_quality: JPEG encoding quality (0-100)
            seek_target: Preferred sampling position in seconds
        """
        self.jpeg_quality = jpeg_quality
        self.seek_target = seek_target

    @staticmethod
    def _duration(cap: cv2.VideoCapture) -> float:
        fps = cap.get(cv2.CAP_PROP_FPS)
        frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        if fps <= 0 or frame_count <= 0:
            return 0.0
        return frame_count / fps

    def _seek(self, cap: cv2.VideoCapture, duration: float) -> np.ndarray:
        """Seek to the sampling position and read the frame there."""
        position = seek_time(duration, self.seek_target)

        logger.debug(f"Seeking to {position:.2f}s of {duration:.2f}s video")
        cap.set(cv2.CAP_PROP_POS_MSEC, position * 1000)
        ret, frame = cap.read()
        if not ret:
            raise ExtractionError("Error seeking video", f"no frame at {position:.2f}s")
        return frame

    def extract(self, video_bytes: bytes, suffix: str = ".mp4") -> bytes:
        """
        Extract one frame from the video and encode it as JPEG at native resolution.

        The temporary file backing the capture is removed on every exit path.

        Args:
            video_bytes: Raw video file contents
            suffix: File extension hint for the decoder

        Returns:
            JPEG bytes of the sampled frame

        Raises:
            ExtractionError: if decoding, seeking or encoding fails
        """
        video_path = None
        cap = None
        try:
            with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
                video_path = Path(tmp.name)
                tmp.write(video_bytes)

            cap = cv2.VideoCapture(str(video_path))
            if not cap.isOpened():
                raise ExtractionError("Error loading video file", "could not open video")

            # Read the first frame to confirm the video decodes
            ret, frame = cap.read()
            if not ret:
                raise ExtractionError("Error loading video file", "no decodable frame")

            duration = self._duration(cap)
            if duration > 0:
                frame = self._seek(cap, duration)
            else:
                logger.warning("Video duration unknown, using first frame")

            if frame is None or frame.size == 0:
                raise ExtractionError("Could not get a drawable frame", "empty frame")

            height, width = frame.shape[:2]
            ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
            if not ok:
                raise ExtractionError("Frame to JPEG conversion failed")

            logger.info(f"Extracted {width}x{height} frame ({len(buffer)} bytes)")
            return buffer.tobytes()
        except OSError as e:
            raise ExtractionError("Error loading video file", str(e)) from e
        except cv2.error as e:
            raise ExtractionError("Error extracting frame from video", str(e)) from e
        finally:
            if cap is not None:
                cap.release()
            if video_path is not None:
                video_path.unlink(missing_ok=True)
