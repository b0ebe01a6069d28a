"""JWT token service for access and refresh tokens."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from taskflow.config import get_settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class InvalidTokenError(TokenError):
    """Malformed token, bad signature or wrong token type."""


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    token_type: str
    expires_at: datetime


class JWTService:
    """Issues and verifies signed tokens.

    Access and refresh tokens are signed with different secrets so that leaking
    one secret never lets an attacker mint the other kind of token.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.access_secret = settings.JWT_SECRET
        self.refresh_secret = settings.REFRESH_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.access_expire = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_expire = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self.remember_me_expire = timedelta(days=settings.REMEMBER_ME_EXPIRE_DAYS)

    def issue_access_token(self, user_id: int, now: datetime | None = None) -> tuple[str, datetime]:
        """Create a short-lived access token. Returns (token, expires_at)."""
        expire = (now or datetime.utcnow()) + self.access_expire
        payload = {"sub": str(user_id), "type": ACCESS_TOKEN_TYPE, "exp": expire}
        return jwt.encode(payload, self.access_secret, algorithm=self.algorithm), expire

    def issue_refresh_token(
        self, user_id: int, remember_me: bool = False, now: datetime | None = None
    ) -> tuple[str, datetime]:
        """Create a refresh token valid for 7 days, or 30 with remember-me."""
        lifetime = self.remember_me_expire if remember_me else self.refresh_expire
        expire = (now or datetime.utcnow()) + lifetime
        payload = {
            "sub": str(user_id),
            "type": REFRESH_TOKEN_TYPE,
            "jti": secrets.token_hex(16),
            "exp": expire,
        }
        return jwt.encode(payload, self.refresh_secret, algorithm=self.algorithm), expire

    def verify(self, token: str, secret: str, expected_type: str) -> TokenPayload:
        """Verify signature, expiry and type. Raises TokenExpiredError or InvalidTokenError."""
        try:
            claims = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError("Token expired") from None
        except JWTError:
            raise InvalidTokenError("Token is not valid") from None

        if claims.get("type") != expected_type:
            raise InvalidTokenError("Token is not valid")
        try:
            user_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError("Token is not valid") from None

        return TokenPayload(
            user_id=user_id,
            token_type=expected_type,
            expires_at=datetime.utcfromtimestamp(claims["exp"]),
        )

    def verify_access_token(self, token: str) -> TokenPayload:
        return self.verify(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        return self.verify(token, self.refresh_secret, REFRESH_TOKEN_TYPE)


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
