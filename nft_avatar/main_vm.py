"""
NFT Avatar Compositor - FastAPI Web Server
Serves the compositing API and the static frontend for the cloud deployment.
Trait assets are read from Azure Blob Storage (blob://container/name refs)
or over HTTP.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from . import __version__
from .assets import AssetResolver, get_blob_service_client
from .config import CompositeConfig, config_from_env
from .export import error_payload, parse_trait_urls, success_payload
from .pipeline import compose_layers, compose_selection
from .traits import Z_ORDER, AvatarSelection

logger = logging.getLogger(__name__)

app = FastAPI(title="NFT Avatar Compositor")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configuration
STORAGE_ACCOUNT_NAME = os.environ.get("STORAGE_ACCOUNT_NAME", "")
ASSET_BASE_URL = os.environ.get("ASSET_BASE_URL", "")


@lru_cache(maxsize=1)
def get_asset_resolver() -> AssetResolver:
    """Asset resolver backed by blob storage when a storage account is configured."""
    blob_service = get_blob_service_client(STORAGE_ACCOUNT_NAME) if STORAGE_ACCOUNT_NAME else None
    return AssetResolver(base_url=ASSET_BASE_URL or None, blob_service=blob_service)


def get_composite_config() -> CompositeConfig:
    return config_from_env()


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _failure(exc: Exception) -> JSONResponse:
    body, status = error_payload(exc)
    if status >= 500:
        logger.exception("Error compositing avatar")
    else:
        logger.warning("Compositing failed: %s", exc)
    return JSONResponse(status_code=status, content=body)


@app.get("/api/health")
def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/api/categories")
def list_categories():
    """Trait categories in the order they are composited (back to front)."""
    return {"categories": [category.value for category in Z_ORDER]}


@app.post("/api/combine-gifs")
async def combine_gifs(
    request: Request,
    resolver: AssetResolver = Depends(get_asset_resolver),
    config: CompositeConfig = Depends(get_composite_config),
):
    """Composite an ordered list of trait image URLs into one PNG or animated GIF."""
    try:
        payload = await request.json()
    except ValueError:
        return _bad_request("Request body must be JSON")
    try:
        trait_urls = parse_trait_urls(payload)
    except ValueError as e:
        return _bad_request(str(e))

    try:
        result = await run_in_threadpool(compose_layers, trait_urls, resolver, config)
    except Exception as e:
        return _failure(e)
    return success_payload(result)


@app.post("/api/compose")
async def compose_avatar(
    request: Request,
    resolver: AssetResolver = Depends(get_asset_resolver),
    config: CompositeConfig = Depends(get_composite_config),
):
    """Composite a full trait selection and return the image as a download."""
    try:
        selection = AvatarSelection.from_dict(await request.json())
    except (ValueError, TypeError, AttributeError) as e:
        return _bad_request(f"Invalid selection: {e}")

    try:
        result = await run_in_threadpool(compose_selection, selection, resolver, config)
    except Exception as e:
        return _failure(e)
    return Response(
        content=result.data,
        media_type=result.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename={result.filename}",
            "X-Frame-Count": str(result.frame_count),
        },
    )


# Serve static frontend
FRONTEND_DIR = Path(os.environ.get("FRONTEND_DIR", Path(__file__).parent / "frontend"))
if FRONTEND_DIR.exists():
    app.mount("/", StaticFiles(directory=str(FRONTEND_DIR), html=True), name="frontend")


def main():
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))


if __name__ == "__main__":
    main()
