"""Registration, login and token endpoints."""

from fastapi import APIRouter, Request, Response, status

from app.core.auth import ACCESS_TOKEN_COOKIE, CurrentAccount
from app.core.deps import AccessControlDep, RequestOriginDep, SettingsDep
from app.core.rate_limit import AUTH_LIMIT, limiter
from app.core.security import TokenPair
from app.models.account import Account
from app.schemas.auth import (
    AccountSummary,
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from app.schemas.common import MessageResponse
from app.services.access_control import AccountProfile

router = APIRouter()


def _auth_response(account: Account, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        account=AccountSummary.model_validate(account),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,  # noqa: ARG001 (required by slowapi)
    data: RegisterRequest,
    access: AccessControlDep,
    origin: RequestOriginDep,
) -> AuthResponse:
    """Register with e-mail, password and essential GDPR consent."""
    account = await access.register(
        email=data.email,
        password=data.password,
        consent_given=data.gdpr_consent,
        profile=AccountProfile(
            locale=data.locale,
            region=data.region,
            age=data.age,
            sex=data.sex,
        ),
        origin=origin,
    )
    return _auth_response(account, access.issue_tokens(account.id))


@router.post("/login", response_model=AuthResponse, summary="Log in")
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,  # noqa: ARG001 (required by slowapi)
    response: Response,
    data: LoginRequest,
    access: AccessControlDep,
    settings: SettingsDep,
) -> AuthResponse:
    """Exchange credentials for tokens. Also sets an HttpOnly access-token cookie."""
    account = await access.authenticate(data.email, data.password)
    tokens = access.issue_tokens(account.id)

    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return _auth_response(account, tokens)


@router.post("/refresh", response_model=TokenResponse, summary="Renew tokens")
async def refresh(data: RefreshRequest, access: AccessControlDep) -> TokenResponse:
    tokens = access.renew(data.refresh_token)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )


@router.post("/logout", response_model=MessageResponse, summary="Log out")
async def logout(_account: CurrentAccount, response: Response) -> MessageResponse:
    """Clear the access-token cookie. Tokens are stateless and simply expire."""
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=AccountSummary, summary="Current account")
async def me(account: CurrentAccount) -> AccountSummary:
    return AccountSummary.model_validate(account)
