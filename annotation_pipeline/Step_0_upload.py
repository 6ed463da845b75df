"""
Step 0: Upload gate
Validates the uploaded media kind and builds the initial session state for a run.
"""

import logging
import mimetypes
from dataclasses import replace

from .errors import UnsupportedMediaError
from .models import MediaFile, MediaKind, SessionState, STEPS, StepId

logger = logging.getLogger(__name__)

UNSUPPORTED_MEDIA_MESSAGE = "Unsupported file type. Please upload an image or MP4 video file."
FRAME_FILENAME = "frame.jpg"
FRAME_MIME_TYPE = "image/jpeg"


def classify_media(mime_type: str) -> MediaKind:
    """
    Map a declared MIME type to a media kind.

    Raises:
        UnsupportedMediaError: for anything that is not image/* or video/*
    """
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return MediaKind.IMAGE
    if mime_type.startswith("video/"):
        return MediaKind.VIDEO
    raise UnsupportedMediaError(UNSUPPORTED_MEDIA_MESSAGE)


def video_suffix(media: MediaFile) -> str:
    """File extension hint for the video decoder."""
    if "." in media.filename:
        return "." + media.filename.rsplit(".", 1)[1].lower()
    return mimetypes.guess_extension(media.mime_type) or ".mp4"


def accept_upload(data: bytes, mime_type: str, filename: str = "") -> SessionState:
    """
    Build a fresh state for an accepted upload, positioned at the narrative step.

    Images become the analysis image directly; videos still need a frame attached.
    """
    kind = classify_media(mime_type)
    media = MediaFile(data=data, mime_type=mime_type, filename=filename)
    logger.info(f"Accepted {kind.value} upload {filename or '<unnamed>'} ({len(data)} bytes)")

    narrative_index = next(i for i, step in enumerate(STEPS) if step.id == StepId.NARRATIVE)
    return SessionState(
        step_index=narrative_index,
        media=media,
        media_kind=kind,
        analysis_image=media if kind == MediaKind.IMAGE else None,
    )


def attach_frame(state: SessionState, frame: bytes) -> SessionState:
    """Store a frame extracted from the uploaded video as the analysis image."""
    return replace(
        state,
        analysis_image=MediaFile(data=frame, mime_type=FRAME_MIME_TYPE, filename=FRAME_FILENAME),
    )
