"""
Session Token Codec
===================

Encodes a ``UserIdentity`` into the value of the ``session`` cookie and back.

The token is an HMAC-signed JWT (PyJWT), so it is compact, uses only the
base64url alphabet plus ``.`` (safe in a Set-Cookie value without escaping)
and is tamper-evident: every decode verifies the signature, issuer and
expiry before any field is trusted.

Claims layout::

    {
        "sub": "<github id>",
        "usr": {"id": 7, "login": "amy", "name": "amy", "avatar_url": "...", "role": "operator"},
        "jti": "<random session id>",
        "iat": 1700000000,
        "exp": 1700086400,
        "iss": "oryn-gateway"
    }

A per-process revocation list can be attached so logged-out session ids are
rejected before their natural expiry.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError

from oryn_gateway.auth.errors import SessionDecodeError
from oryn_gateway.config import Settings
from oryn_gateway.models import UserIdentity

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti", "iss", "usr"]


@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""

    identity: UserIdentity
    session_id: str
    issued_at: int
    expires_at: int


# =============================================================================
# Token Revocation
# =============================================================================

class InMemoryRevocationList:
    """
    Session ids revoked by logout, kept until the token would expire anyway.

    Entries live in process memory only; each worker keeps its own list.
    """

    def __init__(self):
        self._revoked: Dict[str, float] = {}

    def revoke(self, session_id: str, expires_at: float) -> None:
        self._purge()
        self._revoked[session_id] = expires_at

    def is_revoked(self, session_id: str) -> bool:
        self._purge()
        return session_id in self._revoked

    def __len__(self) -> int:
        self._purge()
        return len(self._revoked)

    def _purge(self) -> None:
        now = time.time()
        expired = [sid for sid, exp in self._revoked.items() if exp <= now]
        for sid in expired:
            del self._revoked[sid]


# =============================================================================
# Codec
# =============================================================================

class SessionCodec:
    """Signs and verifies session tokens with a server-held secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "oryn-gateway",
        max_age_seconds: int = 86400,
        leeway_seconds: int = 30,
        revocations: Optional[InMemoryRevocationList] = None,
    ):
        if not secret:
            raise ValueError("Session secret not configured")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.max_age_seconds = max_age_seconds
        self.leeway_seconds = leeway_seconds
        self.revocations = revocations

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        revocations: Optional[InMemoryRevocationList] = None,
    ) -> "SessionCodec":
        return cls(
            secret=settings.SESSION_SECRET.get_secret_value(),
            algorithm=settings.SESSION_JWT_ALGORITHM,
            issuer=settings.SESSION_JWT_ISSUER,
            max_age_seconds=settings.SESSION_MAX_AGE_SECONDS,
            leeway_seconds=settings.SESSION_CLOCK_SKEW_SECONDS,
            revocations=revocations,
        )

    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------

    def encode(self, identity: UserIdentity) -> str:
        """
        Encode an identity record into a signed, cookie-safe token.

        Args:
            identity: The record to carry in the session

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(identity.id),
            "usr": identity.model_dump(),
            "jti": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + timedelta(seconds=self.max_age_seconds),
            "iss": self.issuer,
        }

        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)

        logger.debug(
            "Created session token for user %s (expires in %ss)",
            identity.id,
            self.max_age_seconds,
        )
        return token

    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------

    def decode(self, token: str) -> UserIdentity:
        """
        Verify a session token and return the identity it carries.

        Raises:
            SessionDecodeError: For any malformed, truncated, tampered,
                expired or revoked token. No other exception escapes.
        """
        return self.decode_claims(token).identity

    def decode_claims(self, token: str) -> SessionClaims:
        """
        Verify a session token and return the identity plus session metadata.

        Raises:
            SessionDecodeError: If the token cannot be trusted
        """
        if not token or not isinstance(token, str):
            raise SessionDecodeError("Empty session token")

        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                leeway=self.leeway_seconds,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_iss": True,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except ExpiredSignatureError as e:
            logger.info("Session token expired")
            raise SessionDecodeError("Session token has expired") from e
        except InvalidTokenError as e:
            logger.warning("Invalid session token: %s", type(e).__name__)
            raise SessionDecodeError(f"Invalid session token: {e}") from e

        user_data = decoded["usr"]
        if not isinstance(user_data, dict):
            raise SessionDecodeError("Session token has no identity record")

        try:
            identity = UserIdentity.model_validate(user_data)
        except ValidationError as e:
            logger.warning("Session identity record failed validation")
            raise SessionDecodeError("Session identity record is incomplete") from e

        if decoded["sub"] != str(identity.id):
            raise SessionDecodeError("Session subject does not match identity")

        session_id = decoded["jti"]
        if not isinstance(session_id, str) or not session_id:
            raise SessionDecodeError("Session token has no session id")

        if self.revocations is not None and self.revocations.is_revoked(session_id):
            logger.info("Rejected revoked session for user %s", identity.login)
            raise SessionDecodeError("Session has been revoked")

        return SessionClaims(
            identity=identity,
            session_id=session_id,
            issued_at=int(decoded["iat"]),
            expires_at=int(decoded["exp"]),
        )

    # -------------------------------------------------------------------------
    # Revocation
    # -------------------------------------------------------------------------

    def revoke(self, token: str) -> bool:
        """
        Revoke a session token if a revocation list is attached.

        Returns:
            True if the token was valid and is now revoked
        """
        if self.revocations is None:
            return False

        try:
            claims = self.decode_claims(token)
        except SessionDecodeError:
            return False

        self.revocations.revoke(claims.session_id, claims.expires_at)
        logger.info("Revoked session for user %s", claims.identity.login)
        return True


__all__ = [
    "SessionCodec",
    "SessionClaims",
    "InMemoryRevocationList",
    "REQUIRED_CLAIMS",
]
