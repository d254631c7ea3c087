"""Bearer-token authentication for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.deps import DBSession, SettingsDep
from app.core.exceptions import AuthError, InvalidTokenError
from app.core.security import TokenService
from app.models.account import Account
from app.services.consent_ledger import ConsentLedger

# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)

# Cookie set at login for browser clients
ACCESS_TOKEN_COOKIE = "access_token"


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Prefer the Authorization header, fall back to the access-token cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_account(
    request: Request,
    db: DBSession,
    settings: SettingsDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Account:
    """Resolve the authenticated account from the request's access token.

    The account is also stored on ``request.state`` so rate limiting can key
    on it.

    Raises:
        AuthError: No token was presented.
        TokenExpiredError: The access token has expired.
        InvalidTokenError: Bad signature, wrong token type or unknown account.
    """
    token = extract_token(request, credentials)
    if not token:
        raise AuthError("Not authenticated")

    account_id = TokenService(settings).verify(token, "access")
    account = await db.get(Account, account_id)
    if account is None:
        raise InvalidTokenError("Account not found")

    request.state.account = account
    return account


async def get_consented_account(
    account: Annotated[Account, Depends(get_current_account)],
    db: DBSession,
    settings: SettingsDep,
) -> Account:
    """Authenticated account that has given essential GDPR consent."""
    ConsentLedger(db, settings).require_essential_consent(account)
    return account


# Type aliases for dependency injection
CurrentAccount = Annotated[Account, Depends(get_current_account)]
ConsentedAccount = Annotated[Account, Depends(get_consented_account)]
