"""Cloudinary media API client using httpx."""

import hashlib
import logging
import time
from typing import Any

import httpx

from app.core.config import Settings
from app.core.exceptions import UploadError
from app.integrations.base import StoredBlob

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Compute a Cloudinary request signature.

    Parameters are sorted by name, joined as ``k=v`` with ``&`` and hashed
    with SHA-1 together with the API secret appended.
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


class CloudinaryBlobStore:
    """Async client for Cloudinary's upload and admin APIs."""

    def __init__(self, settings: Settings, timeout: float = 30.0) -> None:
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.base_url = f"{CLOUDINARY_API_BASE}/{self.cloud_name}"
        self.timeout = timeout

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {
            **params,
            "api_key": self.api_key,
            "signature": sign_params(params, self.api_secret),
        }

    async def store(self, data: bytes, folder: str) -> StoredBlob:
        """Upload a JPEG into ``folder`` and return its id and HTTPS URL."""
        form = self._signed({"folder": folder})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/image/upload",
                data=form,
                files={"file": ("upload.jpg", data, "image/jpeg")},
            )

        if not response.is_success:
            logger.error(
                "Cloudinary upload failed: status=%s body=%s",
                response.status_code,
                response.text[:500],
            )
            raise UploadError("Failed to upload image")

        body = response.json()
        return StoredBlob(blob_id=body["public_id"], url=body["secure_url"])

    async def delete(self, blob_id: str) -> None:
        """Delete a single uploaded image."""
        form = self._signed({"public_id": blob_id})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/image/destroy", data=form)
            response.raise_for_status()

    async def delete_folder(self, folder: str) -> None:
        """Delete every image under ``folder`` and then the folder itself."""
        auth = (self.api_key, self.api_secret)

        async with httpx.AsyncClient(auth=auth, timeout=self.timeout) as client:
            response = await client.delete(
                f"{self.base_url}/resources/image/upload",
                params={"prefix": folder},
            )
            response.raise_for_status()

            response = await client.delete(f"{self.base_url}/folders/{folder}")
            # Folder may never have been created
            if response.status_code != 404:
                response.raise_for_status()
