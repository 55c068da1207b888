"""
Serialization of composited avatars to GIF and PNG bytes.
"""

from io import BytesIO
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .errors import EncodeError

MAX_PALETTE_ENTRIES = 256


def delay_to_centiseconds(delay_ms: int) -> int:
    """GIF delays are stored in 1/100 s; round to nearest with a floor of 1."""
    return max(1, (int(delay_ms) + 5) // 10)


def _check_frames(
    indexed_frames: Sequence[np.ndarray],
    palette: Sequence[Tuple[int, int, int]],
    delays_ms: Sequence[int],
    transparent_index: Optional[int],
) -> int:
    if not indexed_frames:
        raise EncodeError("Cannot encode a GIF without frames.")
    if len(delays_ms) != len(indexed_frames):
        raise EncodeError(
            f"Got {len(delays_ms)} delays for {len(indexed_frames)} frames."
        )
    if not palette:
        raise EncodeError("Palette must contain at least one color.")

    entries = len(palette)
    if transparent_index is not None:
        if not 0 <= transparent_index <= entries:
            raise EncodeError(f"Transparent index {transparent_index} is outside the palette.")
        entries = max(entries, transparent_index + 1)
    if entries > MAX_PALETTE_ENTRIES:
        raise EncodeError(f"Palette has {entries} entries; GIF allows at most {MAX_PALETTE_ENTRIES}.")

    shape = indexed_frames[0].shape
    if len(shape) != 2:
        raise EncodeError(f"Indexed frames must be 2-D, got shape {shape}.")
    for position, frame in enumerate(indexed_frames):
        if frame.shape != shape:
            raise EncodeError(
                f"Frame {position} is {frame.shape[1]}x{frame.shape[0]}, "
                f"expected {shape[1]}x{shape[0]}."
            )
        if frame.size and int(frame.max()) >= entries:
            raise EncodeError(f"Frame {position} uses a color index outside the palette.")
    return entries


def encode(
    indexed_frames: Sequence[np.ndarray],
    palette: Sequence[Tuple[int, int, int]],
    delays_ms: Sequence[int],
    loop: int = 0,
    transparent_index: Optional[int] = None,
) -> bytes:
    """
    Encode indexed frames into an animated GIF.

    Args:
        indexed_frames: 2-D uint8 arrays of palette indices, all the same size
        palette: RGB colors; index ``transparent_index`` may sit just past the end
        delays_ms: Display time of every frame in milliseconds
        loop: Number of loops, 0 = loop forever
        transparent_index: Palette index to mark transparent, if any

    Returns:
        The GIF as bytes

    Raises:
        EncodeError: If the frames, palette or delays are inconsistent
    """
    entries = _check_frames(indexed_frames, palette, delays_ms, transparent_index)

    flat_palette: List[int] = [channel for color in palette for channel in color]
    flat_palette.extend([0, 0, 0] * (entries - len(palette)))

    height, width = indexed_frames[0].shape
    images: List[Image.Image] = []
    for frame in indexed_frames:
        image = Image.frombytes("P", (width, height), np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
        image.putpalette(flat_palette)
        images.append(image)

    # Opaque frames draw over the previous frame; frames with a transparent
    # index clear to transparent first so earlier frames never show through.
    save_options = {
        "format": "GIF",
        "save_all": True,
        "append_images": images[1:],
        "duration": [delay_to_centiseconds(delay) * 10 for delay in delays_ms],
        "loop": loop,
        "disposal": 2 if transparent_index is not None else 1,
        "optimize": False,
    }
    if transparent_index is not None:
        save_options["transparency"] = transparent_index

    output = BytesIO()
    try:
        images[0].save(output, **save_options)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to write GIF: {exc}") from exc
    return output.getvalue()


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode a single flattened RGBA frame as PNG."""
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise EncodeError(f"Expected an RGBA frame, got shape {pixels.shape}.")
    output = BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(output, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to write PNG: {exc}") from exc
    return output.getvalue()
