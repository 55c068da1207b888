"""
The avatar compositing pipeline.

A run goes through these states:

    IDLE -> FETCHING_ASSETS -> DECODING -> SYNCHRONIZING -> COMPOSITING
         -> QUANTIZING -> ENCODING -> DONE     (at least one animated layer)
         -> PASSTHROUGH -> DONE                (only still images)

Identical consecutive output frames are merged and their delays summed; an
animation that merges down to one frame takes the PASSTHROUGH path. A run
ends in ERROR if any step fails. Every invocation gets its own PipelineRun;
nothing is shared between runs.
"""

import base64
import enum
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .compositor import composite
from .config import DEFAULT_CONFIG, CompositeConfig, LayerFailurePolicy
from .errors import AvatarCompositorError, FetchError, NoLayersSelectedError
from .frame_sync import FramePlan, merge_repeated_frames, plan
from .gif_decoder import DecodedLayer, load_layer
from .gif_encoder import encode, encode_png
from .quantizer import quantize
from .resizer import choose_canvas_size, resize_layer
from .traits import AvatarSelection

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]

OUTPUT_BASENAME = "nft-avatar"
MIME_TYPES = {"png": "image/png", "gif": "image/gif"}


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    FETCHING_ASSETS = "fetching_assets"
    DECODING = "decoding"
    SYNCHRONIZING = "synchronizing"
    COMPOSITING = "compositing"
    QUANTIZING = "quantizing"
    ENCODING = "encoding"
    PASSTHROUGH = "passthrough"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True, order=True)
class RunGeneration:
    """Monotonic tag identifying which selection change a run belongs to."""

    number: int


@dataclass(frozen=True)
class CompositeResult:
    """Output of one compositing run."""

    format: str
    data: bytes
    frame_count: int
    width: int
    height: int
    generation: Optional[RunGeneration] = None

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.format]

    @property
    def filename(self) -> str:
        return f"{OUTPUT_BASENAME}.{self.format}"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def fetch_with_retry(
    fetch: Fetcher,
    ref: str,
    attempts: int = 3,
    backoff_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """
    Fetch ``ref``, retrying FetchErrors with a linearly growing pause.

    Args:
        fetch: Callable returning the bytes for a reference
        ref: Image reference to fetch
        attempts: Total number of tries
        backoff_seconds: Pause after the first failure; the n-th failure
            waits n times as long
        sleep: Sleep function (injectable for tests)

    Returns:
        The fetched bytes

    Raises:
        FetchError: The last error once every attempt has failed
    """
    for attempt in range(1, attempts + 1):
        try:
            return fetch(ref)
        except FetchError as exc:
            if exc.ref is None:
                exc.ref = ref
            if attempt == attempts:
                raise
            logger.warning("Fetching %s failed (attempt %d/%d): %s", ref, attempt, attempts, exc)
            sleep(backoff_seconds * attempt)
    raise FetchError(f"No attempts made to fetch {ref}", ref=ref)


class PipelineRun:
    """One execution of the pipeline for one ordered list of layer references."""

    def __init__(
        self,
        fetch: Fetcher,
        config: CompositeConfig = DEFAULT_CONFIG,
        generation: Optional[RunGeneration] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.fetch = fetch
        self.config = config
        self.generation = generation
        self.sleep = sleep
        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]
        self.skipped: List[str] = []

    def transition(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s: %s -> %s", self.generation, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def execute(self, layer_refs: Sequence[Tuple[str, str]]) -> CompositeResult:
        """
        Run the pipeline over (label, ref) pairs given back to front.

        Raises:
            NoLayersSelectedError: If ``layer_refs`` is empty
            AvatarCompositorError: Any other failure, tagged with the stage
                it happened in
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("A PipelineRun can only be executed once.")
        try:
            if not layer_refs:
                raise NoLayersSelectedError("Select at least one trait to build an avatar.")
            return self._execute(layer_refs)
        except AvatarCompositorError as exc:
            if exc.stage is None:
                exc.stage = self.state.value
            self.transition(PipelineState.ERROR)
            raise
        except Exception:
            self.transition(PipelineState.ERROR)
            raise

    def _execute(self, layer_refs: Sequence[Tuple[str, str]]) -> CompositeResult:
        self.transition(PipelineState.FETCHING_ASSETS)
        fetched = self._fetch_all(layer_refs)

        self.transition(PipelineState.DECODING)
        layers = [load_layer(data, label) for label, data in fetched]
        canvas_size = choose_canvas_size(layers, self.config.canvas_size)
        layers = [resize_layer(layer, canvas_size) for layer in layers]

        self.transition(PipelineState.SYNCHRONIZING)
        frame_plan = plan(layers)

        self.transition(PipelineState.COMPOSITING)
        frames = self._composite_frames(layers, frame_plan)
        kept, delays = merge_repeated_frames(frames, frame_plan.delays_ms)
        frames = [frames[index] for index in kept]

        width, height = canvas_size
        frame_count = len(frames)
        data: Optional[bytes] = None
        if frame_count > 1:
            self.transition(PipelineState.QUANTIZING)
            quantized = quantize(frames, self.config.alpha_threshold, self.config.max_colors)
            # Frames that differ only below the alpha threshold index identically.
            kept, delays = merge_repeated_frames(quantized.frames, delays)
            frame_count = len(kept)

            if frame_count > 1:
                self.transition(PipelineState.ENCODING)
                data = encode(
                    [quantized.frames[index] for index in kept],
                    quantized.palette,
                    delays,
                    loop=self.config.loop,
                    transparent_index=quantized.transparent_index,
                )
                result_format = "gif"

        if data is None:
            self.transition(PipelineState.PASSTHROUGH)
            data = encode_png(frames[0])
            result_format = "png"
            frame_count = 1

        self.transition(PipelineState.DONE)
        if frame_count != frame_plan.output_frame_count:
            logger.info(
                "Merged %d synchronized frames into %d distinct frames",
                frame_plan.output_frame_count, frame_count,
            )
        logger.info(
            "Composited %d layers into a %dx%d %s with %d frames (%d ms per loop)",
            len(layers), width, height, result_format.upper(),
            frame_count, frame_plan.total_duration_ms,
        )
        return CompositeResult(
            format=result_format,
            data=data,
            frame_count=frame_count,
            width=width,
            height=height,
            generation=self.generation,
        )

    def _fetch_all(self, layer_refs: Sequence[Tuple[str, str]]) -> List[Tuple[str, bytes]]:
        workers = max(1, min(self.config.fetch_workers, len(layer_refs)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    fetch_with_retry,
                    self.fetch,
                    ref,
                    self.config.fetch_attempts,
                    self.config.fetch_backoff_seconds,
                    self.sleep,
                )
                for _, ref in layer_refs
            ]

        fetched: List[Tuple[str, bytes]] = []
        for (label, ref), future in zip(layer_refs, futures):
            try:
                fetched.append((label, future.result()))
            except FetchError as exc:
                if self.config.layer_failure_policy is LayerFailurePolicy.ABORT:
                    raise
                logger.warning("Skipping layer %s: could not fetch %s: %s", label, ref, exc)
                self.skipped.append(label)

        if not fetched:
            raise FetchError(f"None of the {len(layer_refs)} layers could be fetched.")
        return fetched

    @staticmethod
    def _composite_frames(layers: Sequence[DecodedLayer], frame_plan: FramePlan) -> List[np.ndarray]:
        frames: List[np.ndarray] = []
        for output_index in range(frame_plan.output_frame_count):
            stack = [
                layer.frames[frame_plan.frame_index_for(layer_index, output_index)].pixels
                for layer_index, layer in enumerate(layers)
            ]
            frames.append(composite(stack))
        return frames


def compose_layers(
    refs: Sequence[str],
    fetch: Fetcher,
    config: CompositeConfig = DEFAULT_CONFIG,
    generation: Optional[RunGeneration] = None,
    labels: Optional[Sequence[str]] = None,
) -> CompositeResult:
    """
    Composite an ordered list of image references (back to front).

    This is the entry point for callers that already hold the refs in
    z-order, such as the export endpoint's ``traitUrls``.
    """
    if labels is None:
        labels = [f"layer-{index}" for index in range(len(refs))]
    elif len(labels) != len(refs):
        raise ValueError("labels and refs must have the same length")
    run = PipelineRun(fetch, config, generation)
    return run.execute(list(zip(labels, refs)))


def compose_selection(
    selection: AvatarSelection,
    fetch: Fetcher,
    config: CompositeConfig = DEFAULT_CONFIG,
    generation: Optional[RunGeneration] = None,
) -> CompositeResult:
    """Composite every selected trait of ``selection`` in canonical z-order."""
    layer_refs = [(category.value, trait.image_ref) for category, trait in selection.layers()]
    run = PipelineRun(fetch, config, generation)
    return run.execute(layer_refs)
