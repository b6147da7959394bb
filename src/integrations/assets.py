"""Asset stores for uploaded image bytes.

Two backends share the ``AssetStore`` protocol: a local directory served
from a public URL prefix, and a remote asset host reached over HTTP.
``create_asset_store`` picks one from configuration.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from inkwell.config import AssetConfig
from inkwell.shared.errors import DependencyError

logger = logging.getLogger(__name__)


class StoredAsset(BaseModel):
    """Where an uploaded payload ended up."""

    key: str
    url: str


class AssetStore(Protocol):
    def upload(self, data: bytes, *, filename: str, content_type: str) -> StoredAsset: ...

    def delete(self, key: str) -> bool: ...

    def url_for(self, key: str) -> str: ...


def _safe_name(filename: str) -> str:
    return Path(filename).name.replace(" ", "_") or "upload"


class LocalAssetStore:
    """Writes files as ``<uuid>_<name>`` under a directory."""

    def __init__(self, directory: Path, public_url: str = "/uploads/images") -> None:
        self.directory = directory
        self.public_url = public_url.rstrip("/")

    def upload(self, data: bytes, *, filename: str, content_type: str) -> StoredAsset:
        key = f"{uuid.uuid4().hex}_{_safe_name(filename)}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / key).write_bytes(data)
        except OSError as exc:
            logger.warning("Failed to write asset %s: %s", key, exc)
            raise DependencyError(f"could not store {filename}: {exc}") from exc
        logger.debug("Stored %s (%s, %d bytes) as %s", filename, content_type, len(data), key)
        return StoredAsset(key=key, url=self.url_for(key))

    def delete(self, key: str) -> bool:
        path = self.directory / _safe_name(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to delete asset %s: %s", key, exc)
            raise DependencyError(f"could not delete asset {key}: {exc}") from exc
        return True

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"


class RemoteAssetHost:
    """Client for an HTTP asset host.

    Uploads are multipart POSTs to ``{api_url}/upload``; deletes are
    ``DELETE {api_url}/files/{key}``.  Both authenticate with a Bearer key.
    """

    def __init__(self, config: AssetConfig) -> None:
        self.config = config
        self.base_url = config.api_url.rstrip("/")

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}", **extra}

    def _send(self, req: urllib.request.Request) -> bytes:
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
                return resp.read()
        except (urllib.error.URLError, OSError) as exc:
            logger.warning("Asset host %s %s failed: %s", req.get_method(), req.full_url, exc)
            raise DependencyError(f"asset host request failed: {exc}") from exc

    def upload(self, data: bytes, *, filename: str, content_type: str) -> StoredAsset:
        boundary = f"----InkwellUpload{uuid.uuid4().hex}"
        name = _safe_name(filename)
        disposition = f'Content-Disposition: form-data; name="file"; filename="{name}"\r\n'
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                disposition.encode(),
                f"Content-Type: {content_type}\r\n\r\n".encode(),
                data,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        req = urllib.request.Request(
            f"{self.base_url}/upload",
            data=body,
            method="POST",
            headers=self._headers(**{"Content-Type": f"multipart/form-data; boundary={boundary}"}),
        )
        raw = self._send(req)
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DependencyError("asset host returned an unreadable response") from exc

        url = payload.get("url") if isinstance(payload, dict) else None
        if not url:
            raise DependencyError("asset host response did not include a url")
        key = payload.get("key") or urllib.parse.urlparse(url).path.rsplit("/", 1)[-1]
        logger.info("Uploaded %s to asset host as %s", filename, key)
        return StoredAsset(key=key, url=url)

    def delete(self, key: str) -> bool:
        """Delete a remote asset.  Returns False when the host does not know it."""
        req = urllib.request.Request(
            f"{self.base_url}/files/{urllib.parse.quote(key)}",
            method="DELETE",
            headers=self._headers(),
        )
        try:
            self._send(req)
        except DependencyError as exc:
            if isinstance(exc.__cause__, urllib.error.HTTPError) and exc.__cause__.code == 404:
                return False
            raise
        return True

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/files/{urllib.parse.quote(key)}"


def create_asset_store(config: AssetConfig) -> AssetStore:
    """Build the asset store selected by ``config.backend``."""
    if config.backend == "remote":
        if not config.is_remote_configured:
            raise DependencyError("remote asset backend needs api_url and api_key")
        return RemoteAssetHost(config)
    return LocalAssetStore(Path(config.directory), config.public_url)
