"""FastAPI dependencies: DB session, services, and the bearer auth gate."""

from typing import Iterator, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from notes_api.accounts import AccountService, get_user
from notes_api.config import Settings, get_settings
from notes_api.exceptions import UnauthorizedError
from notes_api.mailer import OtpMailer, build_mailer
from notes_api.oauth import GoogleIdentityProvider, build_identity_provider
from notes_api.security import TokenIssuer
from notes_database.db import SessionLocal
from notes_database.models import User

# auto_error=False so a missing header reaches our own uniform 401.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# DATABASE Dependency
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_days=settings.access_token_expire_days,
    )


def get_mailer(settings: Settings = Depends(get_settings)) -> OtpMailer:
    return build_mailer(settings)


def get_identity_provider(
    settings: Settings = Depends(get_settings),
) -> Optional[GoogleIdentityProvider]:
    return build_identity_provider(settings)


def get_account_service(
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    mailer: OtpMailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
) -> AccountService:
    return AccountService(
        db,
        tokens,
        mailer,
        otp_ttl_minutes=settings.otp_ttl_minutes,
        otp_resend_cooldown_seconds=settings.otp_resend_cooldown_seconds,
        link_external_by_email=settings.link_external_by_email,
    )


def resolve_token_user(db: Session, tokens: TokenIssuer, token: Optional[str]) -> User:
    """Map a raw bearer token to its account or raise UnauthorizedError."""
    if not token:
        raise UnauthorizedError()
    user = get_user(db, tokens.decode(token))
    if user is None:
        raise UnauthorizedError()
    return user


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> User:
    """Required auth: any credential problem stops the request with 401."""
    return resolve_token_user(db, tokens, token)


def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> Optional[User]:
    """Optional auth: the same checks, but failures mean an anonymous caller."""
    try:
        return resolve_token_user(db, tokens, token)
    except UnauthorizedError:
        return None
