"""Account registration, login and token lifecycle."""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import (
    ConsentNotGivenError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTokenError,
    PremiumRequiredError,
    TokenExpiredError,
    WeakPasswordError,
)
from app.core.security import TokenPair, TokenService, hash_password, verify_password
from app.models.account import Account, Sex
from app.models.consent_record import ConsentCategory
from app.services.consent_ledger import ConsentLedger, RequestOrigin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountProfile:
    """Optional profile fields collected at registration."""

    locale: str | None = None
    region: str | None = None
    age: int | None = None
    sex: Sex | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccessControl:
    """Business logic for identity and credentials."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        tokens: TokenService | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.tokens = tokens or TokenService(settings)
        self.ledger = ConsentLedger(db, settings)

    async def get_by_email(self, email: str) -> Account | None:
        result = await self.db.execute(
            select(Account).where(Account.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        return await self.db.get(Account, account_id)

    async def register(
        self,
        email: str,
        password: str,
        consent_given: bool,
        profile: AccountProfile | None = None,
        origin: RequestOrigin | None = None,
    ) -> Account:
        """Create an account and log the essential consent given at sign-up.

        Raises:
            ConsentNotGivenError: If the user did not tick the consent box.
            WeakPasswordError: If the password is shorter than the minimum.
            DuplicateEmailError: If the e-mail is already registered.
        """
        if not consent_given:
            raise ConsentNotGivenError()
        if len(password) < self.settings.password_min_length:
            raise WeakPasswordError(self.settings.password_min_length)

        email = normalize_email(email)
        if await self.get_by_email(email) is not None:
            raise DuplicateEmailError()

        profile = profile or AccountProfile()
        account = Account(
            email=email,
            password_hash=hash_password(password, rounds=self.settings.bcrypt_rounds),
            locale=profile.locale or "English",
            region=profile.region,
            age=profile.age,
            sex=profile.sex,
            consent_given_at=datetime.now(UTC),
            retention_consent=True,
        )
        self.db.add(account)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same e-mail
            await self.db.rollback()
            raise DuplicateEmailError()

        await self.ledger.record(account.id, ConsentCategory.ESSENTIAL, True, origin)
        await self.db.commit()

        logger.info("Account registered: id=%s", account.id)
        return account

    async def authenticate(self, email: str, password: str) -> Account:
        """Check credentials and stamp the login time."""
        account = await self.get_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            raise InvalidCredentialsError()

        account.last_login_at = datetime.now(UTC)
        await self.db.commit()
        return account

    def issue_tokens(self, account_id: uuid.UUID) -> TokenPair:
        return self.tokens.issue(account_id)

    def verify_access(self, token: str) -> uuid.UUID:
        return self.tokens.verify(token, "access")

    def renew(self, refresh_token: str) -> TokenPair:
        """Exchange a valid refresh token for a new token pair."""
        try:
            account_id = self.tokens.verify(refresh_token, "refresh")
        except TokenExpiredError:
            raise InvalidTokenError("Refresh token has expired")
        return self.tokens.issue(account_id)

    @staticmethod
    def require_premium(account: Account) -> None:
        if not account.is_premium:
            raise PremiumRequiredError()
