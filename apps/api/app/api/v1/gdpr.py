"""GDPR endpoints: consent, export and erasure."""

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from app.core.auth import ACCESS_TOKEN_COOKIE, CurrentAccount
from app.core.deps import ConsentLedgerDep, RequestOriginDep, RetentionManagerDep
from app.schemas.common import MessageResponse
from app.schemas.gdpr import (
    ConsentRecordResponse,
    ConsentStateResponse,
    ConsentUpdateRequest,
    DeleteAccountRequest,
    DeletionScheduledResponse,
)

router = APIRouter()

EXPORT_FILENAME = "my-data.json"


# === Consent ===


@router.post("/consent", response_model=ConsentStateResponse, summary="Update consent")
async def update_consent(
    data: ConsentUpdateRequest,
    account: CurrentAccount,
    ledger: ConsentLedgerDep,
    origin: RequestOriginDep,
) -> ConsentStateResponse:
    """Grant or withdraw marketing, retention or cookie consent."""
    await ledger.update_preference(account, data.category, data.granted, origin)
    return ConsentStateResponse(
        message="Consent updated successfully",
        consents=await ledger.latest_by_category(account.id),
    )


@router.get("/consents", response_model=list[ConsentRecordResponse], summary="Consent history")
async def list_consents(
    account: CurrentAccount,
    ledger: ConsentLedgerDep,
) -> list[ConsentRecordResponse]:
    records = await ledger.history(account.id)
    return [ConsentRecordResponse.model_validate(record) for record in records]


# === Export ===


@router.post("/export", summary="Download my data")
async def export_data(
    account: CurrentAccount,
    retention: RetentionManagerDep,
) -> JSONResponse:
    """Everything stored about the account, as a JSON file download."""
    bundle = await retention.export_data(account)
    return JSONResponse(
        content=bundle,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


# === Erasure ===


@router.post("/delete-account", response_model=MessageResponse, summary="Delete account now")
async def delete_account(
    data: DeleteAccountRequest,
    account: CurrentAccount,
    retention: RetentionManagerDep,
    response: Response,
) -> MessageResponse:
    """Irreversibly delete the account. Requires the confirmation phrase "DELETE"."""
    await retention.delete_now(account, data.confirmation)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return MessageResponse(message="Account and all associated data deleted successfully")


@router.post(
    "/schedule-deletion",
    response_model=DeletionScheduledResponse,
    summary="Schedule account deletion",
)
async def schedule_deletion(
    account: CurrentAccount,
    retention: RetentionManagerDep,
) -> DeletionScheduledResponse:
    """Delete the account after the grace period unless canceled."""
    deletion_date = await retention.schedule_deletion(account)
    return DeletionScheduledResponse(
        message="Account deletion scheduled",
        deletion_date=deletion_date,
    )


@router.post("/cancel-deletion", response_model=MessageResponse, summary="Cancel deletion")
async def cancel_deletion(
    account: CurrentAccount,
    retention: RetentionManagerDep,
) -> MessageResponse:
    await retention.cancel_scheduled_deletion(account)
    return MessageResponse(message="Account deletion canceled")
