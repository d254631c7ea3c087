"""Submission pipeline: validate → normalize → store → analyze → persist."""

import logging
import math
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import AnalysisError, NotFoundError, UploadError
from app.integrations.base import BlobStore, ImageAnalyzer, StoredBlob
from app.models.account import Account
from app.models.submission import Submission
from app.services.image_service import normalize_image, validate_image

logger = logging.getLogger(__name__)

DEFAULT_REGION = "unknown"


def account_folder(settings: Settings, account_id: uuid.UUID) -> str:
    """Blob namespace for everything uploaded by one account."""
    return f"{settings.cloudinary_folder}/{account_id}"


class SubmissionPipeline:
    """Creates, lists and deletes analysis submissions for an account."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        blob_store: BlobStore,
        analyzer: ImageAnalyzer,
    ) -> None:
        self.db = db
        self.settings = settings
        self.blob_store = blob_store
        self.analyzer = analyzer

    async def create(
        self,
        account: Account,
        image: bytes,
        content_type: str | None,
        questionnaire: dict[str, Any],
        region: str | None = None,
    ) -> Submission:
        """Run one submission end to end. Single attempt, no retries.

        Raises:
            ImageValidationError: Bad type, size or content.
            UploadError: BlobStore rejected the image.
            AnalysisError: ImageAnalyzer failed; the stored blob is removed.
        """
        premium = account.is_premium
        region = region or DEFAULT_REGION

        # 1. Validate
        validate_image(image, content_type)

        # 2. Normalize (orientation applied, metadata stripped)
        normalized = normalize_image(image)

        # 3. Store
        blob = await self._store(normalized, account.id)

        # 4. Analyze
        try:
            result = await self.analyzer.analyze(blob.url, questionnaire, region, premium)
        except Exception as e:
            await self._discard_blob(blob)
            if isinstance(e, AnalysisError):
                raise
            logger.exception("Image analysis failed for account=%s", account.id)
            raise AnalysisError(f"Failed to analyze image: {e}") from e

        # 5. Persist
        now = datetime.now(UTC)
        submission = Submission(
            account_id=account.id,
            blob_id=blob.blob_id,
            image_url=blob.url,
            body_region=region,
            questionnaire=questionnaire,
            result=result,
            is_premium=premium,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=self.settings.data_retention_days),
        )
        self.db.add(submission)
        await self.db.commit()

        logger.info(
            "Submission created: id=%s account=%s premium=%s",
            submission.id,
            account.id,
            premium,
        )
        return submission

    async def _store(self, data: bytes, account_id: uuid.UUID) -> StoredBlob:
        try:
            return await self.blob_store.store(data, account_folder(self.settings, account_id))
        except UploadError:
            raise
        except Exception as e:
            logger.exception("Image upload failed for account=%s", account_id)
            raise UploadError(f"Failed to upload image: {e}") from e

    async def _discard_blob(self, blob: StoredBlob) -> None:
        """Best-effort blob removal; failures are logged and swallowed."""
        try:
            await self.blob_store.delete(blob.blob_id)
        except Exception:
            logger.warning("Could not delete orphaned blob %s", blob.blob_id, exc_info=True)

    async def list_for_account(
        self,
        account_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Submission], int, int]:
        """Return one page of submissions (newest first), the total and page count."""
        total = await self.db.scalar(
            select(func.count()).select_from(Submission).where(Submission.account_id == account_id)
        )
        total = total or 0

        result = await self.db.execute(
            select(Submission)
            .where(Submission.account_id == account_id)
            .order_by(Submission.created_at.desc(), Submission.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        pages = math.ceil(total / limit) if limit else 0
        return list(result.scalars().all()), total, pages

    async def get_for_account(self, submission_id: uuid.UUID, account_id: uuid.UUID) -> Submission:
        """Fetch a submission owned by ``account_id``; other owners look like 404."""
        result = await self.db.execute(
            select(Submission).where(
                Submission.id == submission_id,
                Submission.account_id == account_id,
            )
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise NotFoundError("Analysis not found")
        return submission

    async def delete_for_account(self, submission_id: uuid.UUID, account_id: uuid.UUID) -> None:
        """Delete the stored image (best-effort) and then the row."""
        submission = await self.get_for_account(submission_id, account_id)
        await self._discard_blob(StoredBlob(blob_id=submission.blob_id, url=submission.image_url))

        await self.db.delete(submission)
        await self.db.commit()
        logger.info("Submission deleted: id=%s account=%s", submission_id, account_id)
