"""
JSON payloads for the export endpoints shared by the FastAPI and Flask servers.
"""

from typing import Any, Dict, Tuple

from .errors import (
    AvatarCompositorError,
    DecodeError,
    EncodeError,
    FetchError,
    NoLayersSelectedError,
)
from .pipeline import CompositeResult

ERROR_STATUS = (
    (NoLayersSelectedError, 400),
    (FetchError, 502),
    (DecodeError, 422),
    (EncodeError, 500),
)


def success_payload(result: CompositeResult) -> Dict[str, Any]:
    return {
        "success": True,
        "imageData": result.to_data_uri(),
        "format": result.format,
        "frameCount": result.frame_count,
        "width": result.width,
        "height": result.height,
        "filename": result.filename,
    }


def error_payload(exc: Exception) -> Tuple[Dict[str, Any], int]:
    """Map a pipeline failure to a JSON body and an HTTP status code."""
    if isinstance(exc, AvatarCompositorError):
        status = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 500)
        body: Dict[str, Any] = {"error": "Failed to combine images", "details": str(exc)}
        if exc.stage:
            body["stage"] = exc.stage
        if isinstance(exc, NoLayersSelectedError):
            body["error"] = "No traits selected"
        return body, status
    return {"error": "Failed to combine images", "details": str(exc)}, 500


def parse_trait_urls(payload: Any) -> list:
    """Validate the ``traitUrls`` field of an export request."""
    trait_urls = payload.get("traitUrls") if isinstance(payload, dict) else None
    if not trait_urls or not isinstance(trait_urls, list) or not all(isinstance(u, str) for u in trait_urls):
        raise ValueError("Invalid input: traitUrls must be a non-empty array")
    return trait_urls
