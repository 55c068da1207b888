"""
Error taxonomy for the avatar compositing pipeline.
"""

from typing import Optional


class AvatarCompositorError(Exception):
    """Base class for every error raised by the compositing pipeline."""

    retryable = False

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class FetchError(AvatarCompositorError):
    """A layer's asset could not be retrieved."""

    retryable = True

    def __init__(self, message: str, ref: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message, stage)
        self.ref = ref


class DecodeError(AvatarCompositorError):
    """Image bytes are malformed or in an unsupported format."""


class DimensionMismatchError(AvatarCompositorError):
    """Frames handed to the compositor do not share one size."""


class EncodeError(AvatarCompositorError):
    """The encoder's input preconditions were violated."""


class NoLayersSelectedError(AvatarCompositorError):
    """Nothing was selected, so there is nothing to composite."""
