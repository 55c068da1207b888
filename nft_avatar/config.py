"""
Configuration for avatar compositing.
"""

import enum
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

MAX_CANVAS_DIMENSION = 4000


class LayerFailurePolicy(str, enum.Enum):
    """What to do with a layer whose asset still fails after all retries."""

    ABORT = "abort"
    SKIP = "skip"


@dataclass(frozen=True)
class CompositeConfig:
    """Configuration for one compositing run."""

    canvas_size: Tuple[int, int] = (1000, 1000)
    alpha_threshold: int = 64  # Pixels with alpha below this become transparent in GIF output
    max_colors: int = 255
    loop: int = 0
    fetch_attempts: int = 3
    fetch_backoff_seconds: float = 0.5
    fetch_workers: int = 8
    layer_failure_policy: LayerFailurePolicy = LayerFailurePolicy.ABORT

    def __post_init__(self):
        if not 0 <= self.alpha_threshold <= 256:
            raise ValueError(f"alpha_threshold must be between 0 and 256, got {self.alpha_threshold}")
        if not 1 <= self.max_colors <= 255:
            raise ValueError(f"max_colors must be between 1 and 255, got {self.max_colors}")
        if self.fetch_attempts < 1:
            raise ValueError("fetch_attempts must be at least 1")
        if self.loop < 0:
            raise ValueError("loop must be 0 (infinite) or a positive count")


DEFAULT_CONFIG = CompositeConfig()


def parse_size(size_text: Optional[str]) -> Tuple[int, int]:
    """Parse a size string (WIDTHxHEIGHT) into a tuple."""
    if not size_text:
        return DEFAULT_CONFIG.canvas_size
    try:
        width_text, height_text = size_text.lower().split("x", maxsplit=1)
        width = int(width_text)
        height = int(height_text)
        if width <= 0 or height <= 0:
            raise ValueError("Dimensions must be positive")
        if width > MAX_CANVAS_DIMENSION or height > MAX_CANVAS_DIMENSION:
            raise ValueError(f"Maximum dimension is {MAX_CANVAS_DIMENSION}px")
        return width, height
    except ValueError as exc:
        raise ValueError(
            f"Size must be WIDTHxHEIGHT (e.g., 1000x1000). Got: {size_text}"
        ) from exc


def parse_policy(policy_text: str) -> LayerFailurePolicy:
    """Parse a layer failure policy name ('abort' or 'skip')."""
    try:
        return LayerFailurePolicy(policy_text.strip().lower())
    except ValueError as exc:
        raise ValueError(
            f"Layer failure policy must be 'abort' or 'skip'. Got: {policy_text}"
        ) from exc


def config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    base: CompositeConfig = DEFAULT_CONFIG,
) -> CompositeConfig:
    """
    Build a CompositeConfig from environment variables.

    Recognised variables: CANVAS_SIZE, ALPHA_THRESHOLD, LAYER_FAILURE_POLICY,
    FETCH_ATTEMPTS and GIF_LOOP. Unset variables keep the value from ``base``.
    """
    if environ is None:
        environ = os.environ

    overrides = {}
    if environ.get("CANVAS_SIZE"):
        overrides["canvas_size"] = parse_size(environ["CANVAS_SIZE"])
    try:
        if environ.get("ALPHA_THRESHOLD"):
            overrides["alpha_threshold"] = int(environ["ALPHA_THRESHOLD"])
        if environ.get("FETCH_ATTEMPTS"):
            overrides["fetch_attempts"] = int(environ["FETCH_ATTEMPTS"])
        if environ.get("GIF_LOOP"):
            overrides["loop"] = int(environ["GIF_LOOP"])
    except ValueError as exc:
        raise ValueError(f"Invalid numeric configuration value: {exc}") from exc
    if environ.get("LAYER_FAILURE_POLICY"):
        overrides["layer_failure_policy"] = parse_policy(environ["LAYER_FAILURE_POLICY"])

    return replace(base, **overrides)
