"""
NFT avatar compositor.
Layers one trait image per category into a flattened PNG, or an animated GIF
when any trait is animated. Used by the FastAPI, Flask and CLI front ends.
"""

__version__ = "1.0.0"

from .config import (
    CompositeConfig,
    DEFAULT_CONFIG,
    LayerFailurePolicy,
    config_from_env,
    parse_size,
)
from .errors import (
    AvatarCompositorError,
    DecodeError,
    DimensionMismatchError,
    EncodeError,
    FetchError,
    NoLayersSelectedError,
)
from .traits import AvatarSelection, Trait, TraitCategory, Z_ORDER
from .gif_decoder import DecodedLayer, Frame, decode, load_layer, load_static
from .frame_sync import FramePlan, merge_repeated_frames, plan
from .compositor import blend_over, composite
from .resizer import choose_canvas_size, resize, resize_layer
from .quantizer import QuantizedAnimation, quantize
from .gif_encoder import encode, encode_png
from .pipeline import (
    CompositeResult,
    PipelineRun,
    PipelineState,
    RunGeneration,
    compose_layers,
    compose_selection,
)
from .preview import PreviewSession

__all__ = [
    "__version__",
    "CompositeConfig",
    "DEFAULT_CONFIG",
    "LayerFailurePolicy",
    "config_from_env",
    "parse_size",
    "AvatarCompositorError",
    "DecodeError",
    "DimensionMismatchError",
    "EncodeError",
    "FetchError",
    "NoLayersSelectedError",
    "AvatarSelection",
    "Trait",
    "TraitCategory",
    "Z_ORDER",
    "DecodedLayer",
    "Frame",
    "decode",
    "load_layer",
    "load_static",
    "FramePlan",
    "plan",
    "merge_repeated_frames",
    "blend_over",
    "composite",
    "choose_canvas_size",
    "resize",
    "resize_layer",
    "QuantizedAnimation",
    "quantize",
    "encode",
    "encode_png",
    "CompositeResult",
    "PipelineRun",
    "PipelineState",
    "RunGeneration",
    "compose_layers",
    "compose_selection",
    "PreviewSession",
]
