"""
Nearest-neighbour resizing of frames and layers to the canvas size.
"""

import logging
from typing import Sequence, Tuple

import numpy as np

from .gif_decoder import DecodedLayer, Frame

logger = logging.getLogger(__name__)


def resize(pixels: np.ndarray, dst_width: int, dst_height: int) -> np.ndarray:
    """Resample an RGBA frame to (dst_width, dst_height) with nearest-neighbour sampling."""
    if dst_width <= 0 or dst_height <= 0:
        raise ValueError(f"Target size must be positive, got {dst_width}x{dst_height}")

    src_height, src_width = pixels.shape[:2]
    if (src_width, src_height) == (dst_width, dst_height):
        return pixels

    xs = np.minimum(np.arange(dst_width) * src_width // dst_width, src_width - 1)
    ys = np.minimum(np.arange(dst_height) * src_height // dst_height, src_height - 1)
    return np.ascontiguousarray(pixels[ys[:, None], xs[None, :]])


def resize_layer(layer: DecodedLayer, size: Tuple[int, int]) -> DecodedLayer:
    """Return ``layer`` with every frame resized to ``size`` (width, height)."""
    if layer.size == size:
        return layer
    logger.info("Resizing layer %s from %dx%d to %dx%d", layer.label, layer.width, layer.height, *size)
    width, height = size
    frames = tuple(Frame(resize(frame.pixels, width, height), frame.delay_ms) for frame in layer.frames)
    return DecodedLayer(
        label=layer.label, width=width, height=height, frames=frames, source_format=layer.source_format
    )


def choose_canvas_size(layers: Sequence[DecodedLayer], default: Tuple[int, int]) -> Tuple[int, int]:
    """
    Pick the output canvas size for a stack of layers.

    The first GIF layer in z-order wins, animated or not; if there is none and
    every layer has the same size that size is used; otherwise ``default``.
    """
    for layer in layers:
        if layer.is_gif or layer.is_animated:
            return layer.size

    sizes = {layer.size for layer in layers}
    if len(sizes) == 1:
        return sizes.pop()
    return default
