"""Password hashing and signed bearer tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from structlog import get_logger

from notes_api.exceptions import UnauthorizedError


logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

OAUTH_STATE_PURPOSE = "oauth_state"
OAUTH_STATE_TTL = timedelta(minutes=10)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
class TokenIssuer:
    """Mints and checks the HS256 JWTs used as bearer credentials.

    Tokens are stateless: a token is valid while its signature checks out and
    it has not expired. There is no refresh and no revocation list.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_days: int = 7) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_delta = timedelta(days=expire_days)

    def _encode(self, claims: dict[str, Any], expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({"iat": now, "exp": now + expires_delta})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            logger.debug("token_expired")
            raise UnauthorizedError() from e
        except JWTError as e:
            logger.debug("token_invalid", reason=str(e))
            raise UnauthorizedError() from e

    def issue(self, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """Generates a bearer token for the given account id."""
        return self._encode({"sub": str(user_id)}, expires_delta or self.expire_delta)

    def decode(self, token: str) -> int:
        """Returns the account id carried by a valid token.

        Raises:
            UnauthorizedError: bad signature, expired, or no usable subject.
        """
        payload = self._decode(token)
        if payload.get("purpose"):
            raise UnauthorizedError()
        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError) as e:
            raise UnauthorizedError() from e

    def issue_state(self, nonce: str, expires_delta: timedelta = OAUTH_STATE_TTL) -> str:
        """Signed, short-lived OAuth state carried through the provider redirect."""
        return self._encode({"purpose": OAUTH_STATE_PURPOSE, "nonce": nonce}, expires_delta)

    def check_state(self, state: str, nonce: Optional[str]) -> bool:
        """True when state is ours, unexpired and carries the nonce this browser holds."""
        if not nonce:
            return False
        try:
            payload = self._decode(state)
        except UnauthorizedError:
            return False
        expected = payload.get("nonce")
        if payload.get("purpose") != OAUTH_STATE_PURPOSE or not isinstance(expected, str):
            return False
        return secrets.compare_digest(expected.encode(), nonce.encode())
