"""
Alpha compositing of RGBA frames with the "over" operator.
"""

from typing import Sequence

import numpy as np

from .errors import DimensionMismatchError


def _round_channel(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def blend_over(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """
    Draw ``overlay`` on top of ``base``.

    Both arrays are RGBA uint8 with shape (height, width, 4). Where the
    overlay is fully transparent the base pixel is kept as is, and where the
    base is fully transparent the overlay pixel is taken as is.
    """
    if base.shape != overlay.shape:
        raise DimensionMismatchError(
            f"Cannot blend frames of shape {overlay.shape} over {base.shape}"
        )

    over_a = overlay[..., 3:4].astype(np.float64) / 255.0
    base_a = base[..., 3:4].astype(np.float64) / 255.0
    over_c = overlay[..., :3].astype(np.float64)
    base_c = base[..., :3].astype(np.float64)

    base_weight = base_a * (1.0 - over_a)
    out_a = over_a + base_weight
    with np.errstate(divide="ignore", invalid="ignore"):
        out_c = np.where(out_a > 0, (over_c * over_a + base_c * base_weight) / out_a, 0.0)

    result = np.empty_like(base)
    result[..., :3] = _round_channel(out_c)
    result[..., 3:4] = _round_channel(out_a * 255.0)

    overlay_clear = overlay[..., 3] == 0
    base_clear = (base[..., 3] == 0) & ~overlay_clear
    result[overlay_clear] = base[overlay_clear]
    result[base_clear] = overlay[base_clear]
    return result


def composite(frames: Sequence[np.ndarray]) -> np.ndarray:
    """
    Fold a back-to-front stack of RGBA frames into one frame.

    The caller supplies frames already in z-order; the first frame is the
    bottom of the stack.
    """
    if not frames:
        raise ValueError("At least one frame is required.")

    shape = frames[0].shape
    for frame in frames[1:]:
        if frame.shape != shape:
            raise DimensionMismatchError(
                f"All frames must share one size; got {frame.shape[1::-1]} and {shape[1::-1]}"
            )

    result = np.array(frames[0], dtype=np.uint8, copy=True)
    for frame in frames[1:]:
        result = blend_over(result, frame)
    return result
