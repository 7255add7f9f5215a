"""Signed bearer tokens identifying a logged-in user."""

from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from drobeo_app.clock import Clock, utcnow
from drobeo_app.errors import UnauthorizedError

ALGORITHM = "HS256"


class SessionTokenSigner:
    """Issue and verify HS256 JWTs carrying the user id in ``sub``.

    Expiry is checked against the injected clock rather than wall time, so
    ``exp`` is read back from the claims instead of left to the JWT library.
    """

    def __init__(self, secret: str, ttl_seconds: int, clock: Clock | None = None) -> None:
        if not secret:
            raise ValueError("A session secret is required")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self.clock = clock or utcnow

    def issue(self, user_id: int) -> str:
        issued_at = self.clock()
        claims = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> int:
        """Return the user id carried by ``token`` or raise UnauthorizedError."""

        if not token:
            raise UnauthorizedError("Authentication required")
        if not token.isascii():
            raise UnauthorizedError("Invalid session token")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options={"verify_exp": False})
            user_id = int(claims["sub"])
            expires_at = int(claims["exp"])
        except (JWTError, KeyError, TypeError, ValueError) as exc:
            raise UnauthorizedError("Invalid session token") from exc
        if self.clock().timestamp() >= expires_at:
            raise UnauthorizedError("Session expired")
        return user_id


__all__ = ["SessionTokenSigner"]
