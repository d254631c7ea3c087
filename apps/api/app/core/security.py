"""Password hashing and JWT token handling."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import bcrypt
import jwt

from app.core.config import Settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError

TokenType = Literal["access", "refresh"]


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


class TokenService:
    """Issues and verifies stateless access and refresh tokens.

    Access and refresh tokens are signed with different secrets, so a leaked
    refresh secret cannot mint access tokens and vice versa.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type == "access":
            return self.settings.jwt_secret
        return self.settings.jwt_refresh_secret

    def _encode(self, account_id: uuid.UUID, token_type: TokenType, lifetime: timedelta) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(account_id),
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(
            payload,
            self._secret_for(token_type),
            algorithm=self.settings.jwt_algorithm,
        )

    def issue(self, account_id: uuid.UUID) -> TokenPair:
        """Create a fresh access/refresh token pair for an account."""
        access_lifetime = timedelta(minutes=self.settings.access_token_expire_minutes)
        return TokenPair(
            access_token=self._encode(account_id, "access", access_lifetime),
            refresh_token=self._encode(
                account_id,
                "refresh",
                timedelta(days=self.settings.refresh_token_expire_days),
            ),
            expires_in=int(access_lifetime.total_seconds()),
        )

    def verify(self, token: str, token_type: TokenType = "access") -> uuid.UUID:
        """Verify a token and return the account id it was issued for.

        Raises:
            TokenExpiredError: If the token's ``exp`` has passed.
            InvalidTokenError: If the signature, type or subject is wrong.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret_for(token_type),
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if payload.get("type") != token_type:
            raise InvalidTokenError("Invalid token type")

        try:
            return uuid.UUID(str(payload["sub"]))
        except ValueError:
            raise InvalidTokenError("Invalid token subject")
