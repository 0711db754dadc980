"""
Token issuing/verification and password hashing.

Access and refresh tokens are stateless HS256 JWTs signed with separate
secrets. There is no server-side revocation list: a token is valid while its
signature checks out and it has not expired.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from aithreya.core.config import Settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class ExpiredToken(TokenError):
    pass


class MalformedToken(TokenError):
    pass


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    kind: str
    expires_at: datetime


class TokenService:
    def __init__(self, settings: Settings):
        self._secrets = {
            ACCESS: settings.JWT_SECRET.get_secret_value(),
            REFRESH: settings.JWT_REFRESH_SECRET.get_secret_value(),
        }
        self._ttl = {
            ACCESS: timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
            REFRESH: timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        }
        self.algorithm = settings.JWT_ALGORITHM

    def issue(self, user_id: int, kind: str = ACCESS, expires_in: Optional[timedelta] = None) -> str:
        if kind not in self._secrets:
            raise ValueError(f"Unknown token kind: {kind}")
        now = datetime.now(timezone.utc)
        expires_at = now + (expires_in if expires_in is not None else self._ttl[kind])
        payload = {
            "sub": str(user_id),
            "type": kind,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue_access_token(self, user_id: int, expires_in: Optional[timedelta] = None) -> str:
        return self.issue(user_id, ACCESS, expires_in)

    def issue_refresh_token(self, user_id: int, expires_in: Optional[timedelta] = None) -> str:
        return self.issue(user_id, REFRESH, expires_in)

    def verify(self, token: str, kind: str = ACCESS) -> TokenPayload:
        """Decode ``token`` as a ``kind`` token.

        Raises ExpiredToken past expiry, MalformedToken for anything else
        wrong: bad signature, wrong kind, missing or non-numeric subject.
        """
        secret = self._secrets.get(kind)
        if secret is None:
            raise ValueError(f"Unknown token kind: {kind}")
        try:
            payload = jwt.decode(
                token, secret, algorithms=[self.algorithm], options={"require": ["exp", "sub"]}
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredToken("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedToken("Invalid token") from exc

        if payload.get("type") != kind:
            raise MalformedToken("Wrong token type")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise MalformedToken("Invalid token subject") from exc
        return TokenPayload(
            user_id=user_id,
            kind=kind,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


class PasswordHasher:
    def __init__(self, settings: Settings):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
        )
        # compared against when the account does not exist
        self._dummy_hash = self._context.hash("aithreya-no-such-user")

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            # malformed stored hash
            return False

    def dummy_verify(self, password: str) -> bool:
        """Spend the cost of one verification when there is no stored hash to check."""
        self.verify(password, self._dummy_hash)
        return False
