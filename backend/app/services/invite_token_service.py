"""
Invitation Token Service
========================
Signed, time-limited tokens for inviting people to a team by e-mail.

A token is the URL-safe base64 encoding of

    raw_token:email:expires_at:signature

where ``expires_at`` is milliseconds since the epoch and ``signature`` is the
HMAC-SHA256 (hex) of ``raw_token:email:expires_at`` under the server secret.
Nothing is stored by the codec; callers persist the encoded token with the
invitation record and use it as the lookup key.
"""

import base64
import binascii
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Union
from urllib.parse import quote, unquote, urlencode

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    InvalidSignatureError,
    InvitationExpiredError,
    MalformedTokenError,
    ValidationError,
)
from app.core.logging_config import logger, token_preview


SEPARATOR = ":"
RAW_TOKEN_BYTES = 32


class VerificationStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"


@dataclass(frozen=True)
class IssuedToken:
    """Result of issuing an invitation token"""
    token: str
    raw_token: str
    email: str
    expires_at: int  # ms since epoch

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a well-formed token"""
    status: VerificationStatus
    lookup_token: str
    raw_token: str
    email: str
    expires_at: int

    @property
    def valid(self) -> bool:
        return self.status == VerificationStatus.VALID

    @property
    def expired(self) -> bool:
        return self.status == VerificationStatus.EXPIRED

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at / 1000, tz=timezone.utc)

    def raise_for_status(self) -> "VerificationResult":
        if self.expired:
            raise InvitationExpiredError(self.email)
        return self


def _now_ms() -> int:
    return int(time.time() * 1000)


class TokenCodec:
    """
    Issues and verifies invitation tokens.

    The secret is injected at construction; ``clock`` returns the current
    time in milliseconds since the epoch and exists so expiry can be tested.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(days=7),
        clock: Optional[Callable[[], int]] = None,
    ):
        if not secret:
            raise ConfigurationError(
                "Invitation signing secret is not configured",
                setting="INVITE_TOKEN_SECRET",
            )
        self._secret = secret.encode("utf-8")
        self.ttl = ttl
        self._clock = clock or _now_ms

    @classmethod
    def from_settings(cls, clock: Optional[Callable[[], int]] = None) -> "TokenCodec":
        return cls(
            settings.INVITE_TOKEN_SECRET,
            ttl=timedelta(days=settings.INVITE_TOKEN_TTL_DAYS),
            clock=clock,
        )

    def sign(self, raw_token: str, email: str, expires_at: Union[int, str]) -> str:
        payload = SEPARATOR.join([raw_token, email, str(expires_at)])
        return hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self, email: str) -> IssuedToken:
        """Create a signed token for ``email``"""
        if not email:
            raise ValidationError("Email is required", field="email")
        if SEPARATOR in email:
            raise ValidationError("Email must not contain ':'", field="email")

        raw_token = secrets.token_hex(RAW_TOKEN_BYTES)
        expires_at = self._clock() + int(self.ttl.total_seconds() * 1000)
        signature = self.sign(raw_token, email, expires_at)

        token = _encode_parts([raw_token, email, str(expires_at), signature])

        logger.log_invitation_event("issue", True, email=email, token=token)
        return IssuedToken(token=token, raw_token=raw_token, email=email, expires_at=expires_at)

    def verify(self, signed_token: str) -> VerificationResult:
        """
        Classify a token received from a client.

        Returns a result that is either valid or expired; raises
        MalformedTokenError or InvalidSignatureError otherwise. Expiry is
        checked before the signature, so an expired token is reported as
        expired even if it was also tampered with.
        """
        parts = self._decode(normalize_token(signed_token))
        raw_token, email, expires_at_str, signature = parts
        # Same key for every accepted spelling (alphabet, padding, percent-encoding)
        lookup_token = _encode_parts(parts)

        # Only the exact decimal text that was signed is accepted
        if not (expires_at_str.isascii() and expires_at_str.isdigit()):
            logger.log_invitation_event("verify", False, email=email, token=lookup_token,
                                        reason="non-numeric expiry")
            raise MalformedTokenError("expiry")
        expires_at = int(expires_at_str)

        if self._clock() > expires_at:
            logger.log_invitation_event("verify", False, email=email, token=lookup_token,
                                        reason="expired")
            return VerificationResult(
                status=VerificationStatus.EXPIRED,
                lookup_token=lookup_token,
                raw_token=raw_token,
                email=email,
                expires_at=expires_at,
            )

        expected = self.sign(raw_token, email, expires_at_str)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            logger.log_invitation_event("verify", False, email=email, token=lookup_token,
                                        reason="signature mismatch")
            raise InvalidSignatureError()

        logger.log_invitation_event("verify", True, email=email, token=lookup_token)
        return VerificationResult(
            status=VerificationStatus.VALID,
            lookup_token=lookup_token,
            raw_token=raw_token,
            email=email,
            expires_at=expires_at,
        )

    def classify(self, signed_token: str) -> VerificationStatus:
        """One-shot classification without exceptions"""
        try:
            return self.verify(signed_token).status
        except MalformedTokenError:
            return VerificationStatus.MALFORMED
        except InvalidSignatureError:
            return VerificationStatus.SIGNATURE_INVALID

    def _decode(self, token: str):
        if not token:
            raise MalformedTokenError("empty")

        # Accept both alphabets; tokens from the standard alphabet predate URL-safe issuance
        normalized = token.replace("+", "-").replace("/", "_")
        normalized += "=" * (-len(normalized) % 4)
        try:
            decoded = base64.b64decode(normalized, altchars=b"-_", validate=True).decode("utf-8")
        except (binascii.Error, ValueError):
            logger.log_invitation_event("verify", False, token=token, reason="undecodable")
            raise MalformedTokenError("encoding")

        parts = decoded.split(SEPARATOR)
        if len(parts) != 4 or not all(parts):
            logger.log_invitation_event("verify", False, token=token,
                                        reason=f"expected 4 parts, got {len(parts)}")
            raise MalformedTokenError("structure")
        return parts


def _encode_parts(parts) -> str:
    joined = SEPARATOR.join(parts)
    return base64.urlsafe_b64encode(joined.encode("utf-8")).decode("ascii")


def normalize_token(signed_token: str) -> str:
    """
    Undo URL percent-encoding if present.

    Verification re-encodes the decoded payload to get the lookup key.
    """
    token = (signed_token or "").strip()
    try:
        decoded = unquote(token, errors="strict")
    except UnicodeDecodeError:
        return token
    return decoded or token


def get_base_url() -> str:
    """Base URL of the web frontend for invitation links"""
    if settings.PUBLIC_HOST:
        return f"https://{settings.PUBLIC_HOST}"
    if settings.SITE_URL:
        return settings.SITE_URL.rstrip("/")
    return settings.DEFAULT_SITE_URL


def build_invite_link(token: str, team_id: str, base_url: Optional[str] = None) -> str:
    """Link the invitee follows: <base>/invite?token=...&teamId=..."""
    base = (base_url or get_base_url()).rstrip("/")
    query = urlencode({"token": token, "teamId": team_id}, quote_via=quote, safe="")
    logger.debug(f"Built invite link for team {team_id} (token {token_preview(token)})")
    return f"{base}/invite?{query}"
