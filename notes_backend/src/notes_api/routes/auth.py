import secrets
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, Query, status
from fastapi.responses import RedirectResponse
from structlog import get_logger

from notes_api.accounts import AccountService
from notes_api.config import Settings, get_settings
from notes_api.deps import (
    get_account_service,
    get_current_user,
    get_identity_provider,
    get_optional_user,
    get_token_issuer,
)
from notes_api.exceptions import NotesAppError, ServiceUnavailableError
from notes_api.oauth import GoogleIdentityProvider, IdentityProviderError
from notes_api.schemas import (
    AuthOut,
    MessageOut,
    ProfileOut,
    ProfileUpdate,
    RegisterOut,
    ResendOtpRequest,
    UserCreate,
    UserEnvelope,
    UserLogin,
    UserOut,
    VerifyOtpRequest,
)
from notes_api.security import OAUTH_STATE_TTL, TokenIssuer
from notes_database.models import User


logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

OAUTH_NONCE_COOKIE = "oauth_nonce"
OAUTH_COOKIE_PATH = "/auth/google"


# PUBLIC_INTERFACE
@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED, summary="Register a new user")
def register(payload: UserCreate, accounts: AccountService = Depends(get_account_service)):
    """
    Register a new local account.
    The account starts unverified; an OTP is sent to the email address and
    no token is issued until it is verified.
    """
    user = accounts.register(payload.name, payload.email, payload.password)
    return RegisterOut(
        message="User registered successfully. Please verify your email with the OTP sent.",
        user_id=user.id,
    )


# PUBLIC_INTERFACE
@router.post("/verify-otp", response_model=AuthOut, summary="Verify email with OTP")
def verify_otp(payload: VerifyOtpRequest, accounts: AccountService = Depends(get_account_service)):
    """
    Verify the pending OTP and return a JWT for the now verified account.
    """
    user, token = accounts.verify(payload.user_id, payload.otp)
    return AuthOut(message="Email verified successfully", token=token, user=UserOut.model_validate(user))


# PUBLIC_INTERFACE
@router.post("/resend-otp", response_model=MessageOut, summary="Send a new OTP")
def resend_otp(payload: ResendOtpRequest, accounts: AccountService = Depends(get_account_service)):
    accounts.resend(payload.user_id)
    return MessageOut(message="OTP sent successfully")


# PUBLIC_INTERFACE
@router.post("/login", response_model=AuthOut, summary="Login and get JWT token")
def login(payload: UserLogin, accounts: AccountService = Depends(get_account_service)):
    """
    Email/password login.
    Unverified accounts receive a new OTP and a 403 with requiresVerification.
    """
    user, token = accounts.login(payload.email, payload.password)
    return AuthOut(message="Login successful", token=token, user=UserOut.model_validate(user))


# PUBLIC_INTERFACE
@router.get("/google", summary="Start Google sign-in")
def google_login(
    provider: Optional[GoogleIdentityProvider] = Depends(get_identity_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """
    Redirect to Google's consent screen with a signed state token.
    """
    if provider is None:
        raise ServiceUnavailableError("Google sign-in is not configured")
    nonce = secrets.token_urlsafe(16)
    response = RedirectResponse(
        provider.authorization_url(tokens.issue_state(nonce)), status_code=status.HTTP_302_FOUND
    )
    # Ties the state to this browser; the callback only accepts it alongside the cookie.
    response.set_cookie(
        OAUTH_NONCE_COOKIE,
        nonce,
        max_age=int(OAUTH_STATE_TTL.total_seconds()),
        path=OAUTH_COOKIE_PATH,
        httponly=True,
        samesite="lax",
        secure=(settings.google_callback_url or "").startswith("https://"),
    )
    return response


# PUBLIC_INTERFACE
@router.get("/google/callback", summary="Google sign-in callback")
def google_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    oauth_nonce: Optional[str] = Cookie(None),
    provider: Optional[GoogleIdentityProvider] = Depends(get_identity_provider),
    tokens: TokenIssuer = Depends(get_token_issuer),
    accounts: AccountService = Depends(get_account_service),
    settings: Settings = Depends(get_settings),
):
    """
    Exchange the authorization code for a profile, resolve it to an account
    and redirect to the frontend with a JWT in the query string.
    """
    failure = RedirectResponse(
        f"{settings.frontend_url}/login?{urlencode({'error': 'google_auth_failed'})}",
        status_code=status.HTTP_302_FOUND,
    )
    if provider is None:
        raise ServiceUnavailableError("Google sign-in is not configured")
    failure.delete_cookie(OAUTH_NONCE_COOKIE, path=OAUTH_COOKIE_PATH)
    if error or not code or not state or not tokens.check_state(state, oauth_nonce):
        logger.warning(
            "google_callback_rejected",
            provider_error=error,
            has_code=bool(code),
            has_nonce=bool(oauth_nonce),
        )
        return failure
    try:
        profile = provider.fetch_profile(code)
        user = accounts.resolve_external_profile(profile)
    except (IdentityProviderError, NotesAppError) as e:
        logger.warning("google_auth_failed", error_message=str(e))
        return failure
    token = tokens.issue(user.id)
    response = RedirectResponse(
        f"{settings.frontend_url}/auth/callback?{urlencode({'token': token})}",
        status_code=status.HTTP_302_FOUND,
    )
    response.delete_cookie(OAUTH_NONCE_COOKIE, path=OAUTH_COOKIE_PATH)
    return response


# PUBLIC_INTERFACE
@router.get("/me", response_model=UserEnvelope, summary="Get current user profile")
def get_profile(current_user: User = Depends(get_current_user)):
    """
    Get details about the current authed user.
    """
    return UserEnvelope(user=UserOut.model_validate(current_user))


# PUBLIC_INTERFACE
@router.put("/profile", response_model=ProfileOut, summary="Update profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    user = accounts.update_profile(current_user, name=payload.name)
    return ProfileOut(message="Profile updated successfully", user=UserOut.model_validate(user))


# PUBLIC_INTERFACE
@router.post("/logout", response_model=MessageOut, summary="Logout")
def logout(current_user: Optional[User] = Depends(get_optional_user)):
    """
    Tokens are stateless; the client discards its token.
    """
    if current_user is not None:
        logger.info("user_logged_out", user_id=current_user.id)
    return MessageOut(message="Logout successful")
