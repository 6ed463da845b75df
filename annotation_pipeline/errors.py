"""
Error kinds raised by the annotation pipeline.
Every error carries a message that can be shown to the user as-is.
"""


class AnnotationPipelineError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedMediaError(AnnotationPipelineError):
    """Uploaded file is neither an image nor a video."""


class ExtractionError(AnnotationPipelineError):
    """A still frame could not be produced from a video."""

    def __init__(self, message: str, cause: str = ""):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)


class PreconditionError(AnnotationPipelineError):
    """A step was invoked without the output it depends on."""


class RemoteCallError(AnnotationPipelineError):
    """The generative service failed or returned a malformed response."""
