"""Interfaces for the third-party capabilities the services depend on.

Production adapters live next to this module (``cloudinary``, ``openai``,
``stripe``); tests swap in in-memory fakes through dependency overrides.
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class StoredBlob:
    """Handle for an uploaded image: deletion id plus public URL."""

    blob_id: str
    url: str


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


class BlobStore(Protocol):
    async def store(self, data: bytes, folder: str) -> StoredBlob: ...

    async def delete(self, blob_id: str) -> None: ...

    async def delete_folder(self, folder: str) -> None: ...


class ImageAnalyzer(Protocol):
    async def analyze(
        self,
        image_url: str,
        questionnaire: dict[str, Any],
        region: str,
        premium: bool,
    ) -> dict[str, Any]: ...


class BillingProvider(Protocol):
    async def create_customer(self, email: str, account_id: str) -> str: ...

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        account_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession: ...

    async def cancel_subscription(self, subscription_id: str) -> None: ...
