"""Account use cases: local registration/login, OTP verification and
linking profiles from the external identity provider."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from structlog import get_logger

from notes_api.exceptions import (
    AccountNotFoundError,
    ConflictError,
    DeliveryError,
    ProviderMismatchError,
    UnauthorizedError,
    VerificationRequiredError,
)
from notes_api.mailer import OtpMailer
from notes_api.oauth import ExternalProfile
from notes_api.otp import issue_otp, resend_otp, verify_otp
from notes_api.security import TokenIssuer, get_password_hash, verify_password
from notes_database.models import AUTH_PROVIDER_EXTERNAL, AUTH_PROVIDER_LOCAL, User, id_in_range


logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user(db: Session, user_id: int) -> Optional[User]:
    if not id_in_range(user_id):
        return None
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalars(select(User).where(User.email == normalize_email(email))).first()


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    return db.scalars(select(User).where(User.external_id == external_id)).first()


# PUBLIC_INTERFACE
class AccountService:
    """Registration, login, verification and external-identity linking.

    Built per request from settings; holds no state of its own besides its
    collaborators.
    """

    def __init__(
        self,
        db: Session,
        tokens: TokenIssuer,
        mailer: OtpMailer,
        *,
        otp_ttl_minutes: int = 10,
        otp_resend_cooldown_seconds: int = 0,
        link_external_by_email: bool = True,
        provider_name: str = "Google",
    ) -> None:
        self.db = db
        self.tokens = tokens
        self.mailer = mailer
        self.otp_ttl_minutes = otp_ttl_minutes
        self.otp_resend_cooldown_seconds = otp_resend_cooldown_seconds
        self.link_external_by_email = link_external_by_email
        self.provider_name = provider_name

    def _require_user(self, user_id: int) -> User:
        user = get_user(self.db, user_id)
        if user is None:
            raise AccountNotFoundError()
        return user

    def _send_otp(self, user: User) -> None:
        try:
            issue_otp(self.db, user, self.mailer, self.otp_ttl_minutes)
        except DeliveryError as e:
            # The code is stored; the client retries through resend-otp.
            raise DeliveryError(details={"userId": user.id}) from e

    def register(self, name: str, email: str, password: str) -> User:
        """Create an unverified local account and send its first OTP."""
        email = normalize_email(email)
        if get_user_by_email(self.db, email):
            raise ConflictError("User already exists with this email")

        user = User(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            auth_provider=AUTH_PROVIDER_LOCAL,
            is_email_verified=False,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email.
            self.db.rollback()
            raise ConflictError("User already exists with this email") from e
        self.db.refresh(user)
        logger.info("user_registered", user_id=user.id)

        self._send_otp(user)
        return user

    def verify(self, user_id: int, code: str) -> tuple[User, str]:
        """Consume the pending OTP; returns the verified account and a token."""
        user = self._require_user(user_id)
        verify_otp(self.db, user, code)
        return user, self.tokens.issue(user.id)

    def resend(self, user_id: int) -> None:
        user = self._require_user(user_id)
        resend_otp(
            self.db,
            user,
            self.mailer,
            self.otp_ttl_minutes,
            self.otp_resend_cooldown_seconds,
        )

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Password login.

        Unknown email and wrong password raise the same UnauthorizedError.
        Unverified accounts get a fresh OTP and a VerificationRequiredError.
        """
        user = get_user_by_email(self.db, email)
        if user is None:
            raise UnauthorizedError(INVALID_CREDENTIALS, headers=None)
        if user.auth_provider != AUTH_PROVIDER_LOCAL:
            raise ProviderMismatchError(f"Please login with {self.provider_name}")
        if not verify_password(password, user.hashed_password):
            raise UnauthorizedError(INVALID_CREDENTIALS, headers=None)

        if not user.is_email_verified:
            self._send_otp(user)
            raise VerificationRequiredError(
                details={"userId": user.id, "requiresVerification": True},
            )

        logger.info("user_logged_in", user_id=user.id)
        return user, self.tokens.issue(user.id)

    def update_profile(self, user: User, name: Optional[str] = None) -> User:
        if name:
            user.name = name
            self.db.commit()
            self.db.refresh(user)
        return user

    def resolve_external_profile(self, profile: ExternalProfile) -> User:
        """Map a provider profile to exactly one account.

        Lookup order: external id, then email (linking the identity to that
        account), then a new verified account.
        """
        user = get_user_by_external_id(self.db, profile.external_id)
        if user is not None:
            return user

        email = normalize_email(profile.email)
        user = get_user_by_email(self.db, email)
        if user is not None:
            if not (self.link_external_by_email and profile.email_verified):
                raise ConflictError(
                    "An account with this email already exists. Please login with your password."
                )
            # Links without proof of the local password; see DESIGN.md.
            user.external_id = profile.external_id
            user.auth_provider = AUTH_PROVIDER_EXTERNAL
            user.is_email_verified = True
            if profile.avatar_url and not user.avatar_url:
                user.avatar_url = profile.avatar_url
            self.db.commit()
            self.db.refresh(user)
            logger.warning(
                "external_identity_linked_by_email",
                user_id=user.id,
                provider=self.provider_name,
            )
            return user

        user = User(
            email=email,
            name=profile.name,
            external_id=profile.external_id,
            avatar_url=profile.avatar_url,
            auth_provider=AUTH_PROVIDER_EXTERNAL,
            is_email_verified=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("external_user_created", user_id=user.id, provider=self.provider_name)
        return user
