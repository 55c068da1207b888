"""
Resolution of trait image references to bytes.

Supported references:
    http(s)://...              fetched with requests
    /path/or/relative/path     read from the local asset folder, or fetched
                               relative to base_url when no folder is set
    blob://container/name      downloaded from Azure Blob Storage
    file:///absolute/path      read from disk (only when allow_file_urls is set)
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


def get_blob_service_client(account_name: str) -> BlobServiceClient:
    """Get blob service client using managed identity."""
    credential = DefaultAzureCredential()
    account_url = f"https://{account_name}.blob.core.windows.net"
    return BlobServiceClient(account_url, credential=credential)


class AssetResolver:
    """Callable turning an image reference into bytes, raising FetchError on failure."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        assets_dir: Optional[Path] = None,
        blob_service: Optional[BlobServiceClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        allow_file_urls: bool = False,
        local_prefix: str = "",
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.assets_dir = Path(assets_dir).resolve() if assets_dir else None
        self.blob_service = blob_service
        self.timeout = timeout
        self.session = session or requests.Session()
        self.allow_file_urls = allow_file_urls
        self.local_prefix = local_prefix

    def __call__(self, ref: str) -> bytes:
        if not ref:
            raise FetchError("Empty image reference", ref=ref)

        logger.debug("Resolving image reference %s", ref)
        scheme = urlparse(ref).scheme.lower()
        if scheme in ("http", "https"):
            return self.fetch_url(ref)
        if scheme == "blob":
            return self.fetch_blob(ref)
        if scheme == "file":
            return self.fetch_file_url(ref)
        if scheme:
            raise FetchError(f"Unsupported image reference scheme: {scheme}", ref=ref)

        if self.assets_dir is not None:
            return self.read_local(ref)
        if self.base_url is not None and ref.startswith("/"):
            return self.fetch_url(f"{self.base_url}{ref}")
        raise FetchError(f"Cannot resolve relative image reference: {ref}", ref=ref)

    def fetch_url(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Could not download {url}: {exc}", ref=url) from exc
        return response.content

    def fetch_blob(self, ref: str) -> bytes:
        if self.blob_service is None:
            raise FetchError("Blob storage is not configured", ref=ref)
        parsed = urlparse(ref)
        container = parsed.netloc
        blob_name = unquote(parsed.path.lstrip("/"))
        if not container or not blob_name:
            raise FetchError(f"Blob reference must be blob://container/name, got {ref}", ref=ref)
        try:
            container_client = self.blob_service.get_container_client(container)
            blob_client = container_client.get_blob_client(blob_name)
            return blob_client.download_blob().readall()
        except AzureError as exc:
            raise FetchError(f"Could not download blob {container}/{blob_name}: {exc}", ref=ref) from exc

    def fetch_file_url(self, ref: str) -> bytes:
        if not self.allow_file_urls:
            raise FetchError("file:// references are not allowed here", ref=ref)
        return self._read(Path(unquote(urlparse(ref).path)), ref)

    def read_local(self, ref: str) -> bytes:
        relative = ref[len(self.local_prefix):] if self.local_prefix and ref.startswith(self.local_prefix) else ref
        path = (self.assets_dir / unquote(relative).lstrip("/")).resolve()
        if not path.is_relative_to(self.assets_dir):
            raise FetchError(f"Image reference escapes the asset folder: {ref}", ref=ref)
        return self._read(path, ref)

    @staticmethod
    def _read(path: Path, ref: str) -> bytes:
        if not path.is_file():
            raise FetchError(f"Asset not found: {ref}", ref=ref)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FetchError(f"Could not read {path}: {exc}", ref=ref) from exc
