"""
Alignment of layers with different frame counts onto one output timeline.

Layers are never time-scaled: a shorter animation simply wraps around, so a
2-frame blink under a 30-frame background blinks 15 times per loop.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .gif_decoder import DecodedLayer


@dataclass(frozen=True)
class FramePlan:
    """Which source frame every layer shows at every output frame."""

    output_frame_count: int
    layer_frame_counts: Tuple[int, ...]
    delays_ms: Tuple[int, ...]

    def frame_index_for(self, layer_index: int, output_index: int) -> int:
        if not 0 <= output_index < self.output_frame_count:
            raise IndexError(f"Output frame {output_index} out of range 0..{self.output_frame_count - 1}")
        return output_index % self.layer_frame_counts[layer_index]

    def delay_for(self, output_index: int) -> int:
        return self.delays_ms[output_index]

    @property
    def total_duration_ms(self) -> int:
        return sum(self.delays_ms)


def plan(layers: Sequence[DecodedLayer]) -> FramePlan:
    """
    Build the frame plan for a stack of layers.

    The output has as many frames as the longest layer (at least one). Each
    output frame lasts as long as the slowest source frame shown in it.
    """
    counts = tuple(layer.frame_count for layer in layers)
    output_frame_count = max(counts, default=1)

    delays: List[int] = []
    for index in range(output_frame_count):
        delays.append(max(
            (layer.frames[index % layer.frame_count].delay_ms for layer in layers),
            default=0,
        ))
    return FramePlan(
        output_frame_count=output_frame_count,
        layer_frame_counts=counts,
        delays_ms=tuple(delays),
    )


def merge_repeated_frames(
    frames: Sequence[np.ndarray],
    delays_ms: Sequence[int],
) -> Tuple[List[int], List[int]]:
    """
    Collapse runs of identical consecutive frames into one frame each.

    GIF writers fold such runs together, so the output is only as long as the
    number of runs.

    Returns:
        The index of the first frame of every run and the summed delay of
        every run
    """
    if len(frames) != len(delays_ms):
        raise ValueError(f"Got {len(delays_ms)} delays for {len(frames)} frames.")

    kept: List[int] = []
    delays: List[int] = []
    for index, frame in enumerate(frames):
        if kept and np.array_equal(frames[kept[-1]], frame):
            delays[-1] += delays_ms[index]
            continue
        kept.append(index)
        delays.append(delays_ms[index])
    return kept, delays
