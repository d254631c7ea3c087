"""Skin image analysis endpoints."""

import json
from typing import Any
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from app.core.auth import ConsentedAccount, CurrentAccount
from app.core.deps import SubmissionPipelineDep, SubmissionQuotaDep
from app.core.exceptions import ValidationError
from app.schemas.common import MessageResponse, PaginatedResponse
from app.schemas.submission import SubmissionResponse, SubmissionSummary

router = APIRouter()


def _parse_questionnaire(raw: str) -> dict[str, Any]:
    try:
        questionnaire = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Questionnaire must be valid JSON", code="invalid_questionnaire")
    if not isinstance(questionnaire, dict):
        raise ValidationError("Questionnaire must be a JSON object", code="invalid_questionnaire")
    return questionnaire


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Analyze a skin image",
    description="""
    Upload a JPEG or PNG image (max 10 MB) with a questionnaire encoded as a
    JSON string. The image is normalized (orientation applied, metadata
    stripped, resized to fit 1024x1024) before it is stored and analyzed.

    Free accounts get 5 analyses per rolling hour, premium accounts 50.
    """,
)
async def create_analysis(
    account: ConsentedAccount,
    pipeline: SubmissionPipelineDep,
    quota: SubmissionQuotaDep,
    image: UploadFile = File(..., description="JPEG or PNG image"),
    questionnaire: str = Form(..., description="Questionnaire answers as a JSON object"),
    region: str | None = Form(default=None, max_length=100, description="Affected body region"),
) -> SubmissionResponse:
    """Run the submission pipeline for one image."""
    await quota.hit(f"account:{account.id}", account.is_premium)

    answers = _parse_questionnaire(questionnaire)
    data = await image.read()

    submission = await pipeline.create(
        account,
        data,
        image.content_type,
        answers,
        region=region,
    )
    return SubmissionResponse.model_validate(submission)


@router.get(
    "",
    response_model=PaginatedResponse[SubmissionSummary],
    summary="List analyses",
)
async def list_analyses(
    account: CurrentAccount,
    pipeline: SubmissionPipelineDep,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
) -> PaginatedResponse[SubmissionSummary]:
    """List the account's analyses, newest first."""
    items, total, pages = await pipeline.list_for_account(account.id, page=page, limit=limit)
    return PaginatedResponse[SubmissionSummary](
        items=[SubmissionSummary.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=limit,
        pages=pages,
    )


@router.get("/{submission_id}", response_model=SubmissionResponse, summary="Get analysis")
async def get_analysis(
    submission_id: UUID,
    account: CurrentAccount,
    pipeline: SubmissionPipelineDep,
) -> SubmissionResponse:
    submission = await pipeline.get_for_account(submission_id, account.id)
    return SubmissionResponse.model_validate(submission)


@router.delete("/{submission_id}", response_model=MessageResponse, summary="Delete analysis")
async def delete_analysis(
    submission_id: UUID,
    account: CurrentAccount,
    pipeline: SubmissionPipelineDep,
) -> MessageResponse:
    """Delete an analysis and its stored image."""
    await pipeline.delete_for_account(submission_id, account.id)
    return MessageResponse(message="Analysis deleted successfully")
