"""
Decoding of trait assets into layers of RGBA frames.

GIFs are decoded frame by frame through a backend; every other raster format
goes through the static loader and becomes a single-frame layer so the rest
of the pipeline never special-cases still images.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Iterator, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageSequence, UnidentifiedImageError

from .errors import DecodeError

GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
MIN_FRAME_DELAY_MS = 10
DEFAULT_FRAME_DELAY_MS = 100


@dataclass(frozen=True)
class Frame:
    """One RGBA frame: ``pixels`` has shape (height, width, 4), dtype uint8."""

    pixels: np.ndarray
    delay_ms: int


@dataclass(frozen=True)
class DecodedLayer:
    """A decoded trait image or animation."""

    label: str
    width: int
    height: int
    frames: Tuple[Frame, ...]
    source_format: Optional[str] = None

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def is_animated(self) -> bool:
        return len(self.frames) > 1

    @property
    def is_gif(self) -> bool:
        return self.source_format == "gif"

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


class PillowGifBackend:
    """Decode GIF frames with Pillow. Frames come out disposed and in RGBA order."""

    channel_order = "RGBA"

    def frames(self, data: bytes) -> Iterator[Tuple[np.ndarray, Optional[int]]]:
        with Image.open(BytesIO(data)) as image:
            if image.format != "GIF":
                raise DecodeError(f"Expected GIF data, got {image.format}")
            for frame in ImageSequence.Iterator(image):
                rgba = frame.convert("RGBA")
                yield np.array(rgba, dtype=np.uint8), frame.info.get("duration")


def is_gif(data: bytes) -> bool:
    return data[:6] in GIF_SIGNATURES


def normalize_delay(delay_ms: Optional[int]) -> int:
    """Turn a frame's stored delay into a renderable delay in milliseconds."""
    if delay_ms is None:
        return DEFAULT_FRAME_DELAY_MS
    return max(MIN_FRAME_DELAY_MS, int(delay_ms))


def bgra_to_rgba(pixels: np.ndarray) -> np.ndarray:
    return pixels[..., [2, 1, 0, 3]]


def decode(data: bytes, backend=None, label: str = "gif") -> DecodedLayer:
    """
    Decode a GIF byte stream into a layer of RGBA frames.

    Args:
        data: GIF bytes, starting with a GIF87a/GIF89a signature
        backend: Object with a ``channel_order`` attribute ("RGBA" or "BGRA")
            and a ``frames(data)`` method yielding (pixels, delay_ms) pairs
        label: Name given to the resulting layer

    Returns:
        The decoded layer; delays are in milliseconds and never below 10ms

    Raises:
        DecodeError: If the signature or block structure is invalid
    """
    if not is_gif(data):
        raise DecodeError(f"Layer {label!r} is not a GIF (bad signature)")
    if backend is None:
        backend = PillowGifBackend()

    channel_order = getattr(backend, "channel_order", None)
    if channel_order not in ("RGBA", "BGRA"):
        raise ValueError(f"Unsupported decoder channel order: {channel_order!r}")

    frames: List[Frame] = []
    try:
        for pixels, delay in backend.frames(data):
            if channel_order == "BGRA":
                pixels = bgra_to_rgba(pixels)
            frames.append(Frame(np.ascontiguousarray(pixels, dtype=np.uint8), normalize_delay(delay)))
    except DecodeError:
        raise
    except (UnidentifiedImageError, OSError, ValueError, EOFError, SyntaxError) as exc:
        raise DecodeError(f"Could not decode GIF for layer {label!r}: {exc}") from exc

    if not frames:
        raise DecodeError(f"GIF for layer {label!r} contains no frames")

    height, width = frames[0].pixels.shape[:2]
    return DecodedLayer(label=label, width=width, height=height, frames=tuple(frames), source_format="gif")


def load_static(data: bytes, label: str = "image") -> DecodedLayer:
    """Load any raster image Pillow understands as a single-frame layer."""
    try:
        with Image.open(BytesIO(data)) as image:
            source_format = (image.format or "").lower() or None
            pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"Could not load image for layer {label!r}: {exc}") from exc

    height, width = pixels.shape[:2]
    return DecodedLayer(
        label=label, width=width, height=height, frames=(Frame(pixels, 0),), source_format=source_format
    )


def load_layer(data: bytes, label: str) -> DecodedLayer:
    """Decode GIF bytes as an animation and anything else as a still image."""
    if is_gif(data):
        return decode(data, label=label)
    return load_static(data, label=label)
