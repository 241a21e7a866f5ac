"""Google sign-in as a one-time code exchange.

The authorization redirect carries a signed state token instead of a
server-side session; the callback exchanges the code for the user's profile.
"""

from dataclasses import dataclass
from typing import Optional

from authlib.integrations.httpx_client import OAuth2Client

from notes_api.config import Settings

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPE = "openid email profile"


@dataclass(frozen=True)
class ExternalProfile:
    """Profile returned by the identity provider."""

    external_id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    email_verified: bool = True


class IdentityProviderError(Exception):
    """The provider rejected the exchange or returned an unusable profile."""


# PUBLIC_INTERFACE
class GoogleIdentityProvider:
    """Builds the Google consent URL and resolves callback codes to profiles."""

    display_name = "Google"

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: float = 10.0) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def _client(self) -> OAuth2Client:
        return OAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=GOOGLE_SCOPE,
            redirect_uri=self.redirect_uri,
            timeout=self.timeout,
        )

    def authorization_url(self, state: str) -> str:
        with self._client() as client:
            url, _ = client.create_authorization_url(GOOGLE_AUTHORIZE_URL, state=state)
        return url

    def fetch_profile(self, code: str) -> ExternalProfile:
        try:
            with self._client() as client:
                client.fetch_token(GOOGLE_TOKEN_URL, code=code)
                resp = client.get(GOOGLE_USERINFO_URL)
                resp.raise_for_status()
                info = resp.json()
        except IdentityProviderError:
            raise
        except Exception as e:
            raise IdentityProviderError("Code exchange with Google failed") from e
        return profile_from_userinfo(info)


def profile_from_userinfo(info: dict) -> ExternalProfile:
    """Map an OpenID Connect userinfo document to an ExternalProfile."""
    subject = info.get("sub")
    email = info.get("email")
    if not subject or not email:
        raise IdentityProviderError("Provider profile is missing sub or email")
    name = (info.get("name") or "").strip() or email.split("@", 1)[0]
    return ExternalProfile(
        external_id=str(subject),
        email=email,
        name=name,
        avatar_url=info.get("picture") or None,
        email_verified=bool(info.get("email_verified", True)),
    )


# PUBLIC_INTERFACE
def build_identity_provider(settings: Settings) -> Optional[GoogleIdentityProvider]:
    """None when Google credentials are not configured."""
    if not settings.google_enabled:
        return None
    return GoogleIdentityProvider(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_callback_url,
    )
