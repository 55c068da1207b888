"""
Global palette quantization for animated output.

One palette is built from the pixels of every frame so colours stay stable
across the whole animation. Alpha is binarized: a pixel is either fully
transparent or fully opaque in the GIF.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

MAX_SAMPLE_PIXELS = 1 << 20
_DISTANCE_CHUNK = 4096

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class QuantizedAnimation:
    """Indexed frames sharing one palette."""

    palette: Tuple[RGB, ...]
    frames: Tuple[np.ndarray, ...]
    transparent_index: Optional[int]


def _pack(rgb: np.ndarray) -> np.ndarray:
    rgb = rgb.astype(np.uint32)
    return (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]


def _unpack(keys: np.ndarray) -> np.ndarray:
    return np.stack([(keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF], axis=1).astype(np.int32)


def build_palette(opaque_rgb: np.ndarray, max_colors: int) -> np.ndarray:
    """
    Build a palette of at most ``max_colors`` entries for the given pixels.

    Args:
        opaque_rgb: Array of shape (n, 3) holding every opaque pixel
        max_colors: Upper bound on the palette size

    Returns:
        Array of shape (k, 3), k <= max_colors
    """
    unique = np.unique(_pack(opaque_rgb))
    if len(unique) <= max_colors:
        return _unpack(unique)

    stride = max(1, len(opaque_rgb) // MAX_SAMPLE_PIXELS)
    sample = np.ascontiguousarray(opaque_rgb[::stride].astype(np.uint8))
    image = Image.fromarray(sample.reshape(1, -1, 3))
    reduced = image.quantize(colors=max_colors, method=Image.Quantize.MEDIANCUT, dither=Image.Dither.NONE)
    used = reduced.getcolors(maxcolors=256) or []
    color_count = max(index for _, index in used) + 1
    flat = reduced.getpalette()[: color_count * 3]
    return np.array(flat, dtype=np.int32).reshape(-1, 3)


def nearest_indices(colors: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Index of the nearest palette entry (squared RGB distance) for each color."""
    colors = colors.astype(np.int32)
    palette = palette.astype(np.int32)
    result = np.empty(len(colors), dtype=np.uint8)
    for start in range(0, len(colors), _DISTANCE_CHUNK):
        chunk = colors[start:start + _DISTANCE_CHUNK]
        distances = ((chunk[:, None, :] - palette[None, :, :]) ** 2).sum(axis=2)
        result[start:start + len(chunk)] = np.argmin(distances, axis=1)
    return result


def quantize(
    frames: Sequence[np.ndarray],
    alpha_threshold: int = 64,
    max_colors: int = 255,
) -> QuantizedAnimation:
    """
    Reduce RGBA frames to indexed frames over one shared palette.

    Args:
        frames: RGBA frames, all of the same size
        alpha_threshold: Pixels with alpha below this become transparent
        max_colors: Maximum number of opaque palette entries (the transparent
            entry, when needed, comes on top of these)

    Returns:
        The palette, the indexed frames and the transparent index (None when
        every pixel is opaque)
    """
    if not frames:
        raise ValueError("At least one frame is required.")
    if not 1 <= max_colors <= 255:
        raise ValueError(f"max_colors must be between 1 and 255, got {max_colors}")

    shape = frames[0].shape[:2]
    if any(frame.shape[:2] != shape for frame in frames):
        raise ValueError("All frames must share one size to share a palette.")
    pooled = np.concatenate([frame.reshape(-1, 4) for frame in frames])
    opaque = pooled[:, 3] >= alpha_threshold
    opaque_rgb = pooled[opaque, :3]

    if len(opaque_rgb):
        palette = build_palette(opaque_rgb, max_colors)
        keys, inverse = np.unique(_pack(opaque_rgb), return_inverse=True)
        mapped = nearest_indices(_unpack(keys), palette)[inverse.reshape(-1)]
    else:
        palette = np.zeros((1, 3), dtype=np.int32)
        mapped = np.empty(0, dtype=np.uint8)

    transparent_index: Optional[int] = None
    indexed = np.zeros(len(pooled), dtype=np.uint8)
    if not opaque.all():
        transparent_index = len(palette)
        indexed[:] = transparent_index
    indexed[opaque] = mapped

    pixels_per_frame = shape[0] * shape[1]
    indexed_frames: List[np.ndarray] = [
        indexed[i * pixels_per_frame:(i + 1) * pixels_per_frame].reshape(shape)
        for i in range(len(frames))
    ]
    return QuantizedAnimation(
        palette=tuple(tuple(int(c) for c in color) for color in palette),
        frames=tuple(indexed_frames),
        transparent_index=transparent_index,
    )
