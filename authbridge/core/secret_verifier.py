"""Shared-secret bearer gate for the sync endpoint.

Checks, in order, stopping at the first failure:
    1. Transport is TLS (unless the debug override is active)
    2. A secret is configured (an empty secret disables the endpoint)
    3. The Authorization header is ``Bearer <token>``
    4. The token equals the secret (constant-time comparison)

The verifier is a pure predicate over the request and its injected
configuration: it performs no I/O.
"""
from __future__ import annotations
import hmac
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import AuthorizationError

BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)$", re.IGNORECASE)


class DenialReason(Enum):
    TRANSPORT_INSECURE = "rest_forbidden_ssl"
    NOT_CONFIGURED = "rest_forbidden_no_secret"
    INVALID_OR_MISSING = "rest_forbidden_invalid_secret"


_DENIAL_MESSAGES = {
    DenialReason.TRANSPORT_INSECURE: "This endpoint requires HTTPS.",
    DenialReason.NOT_CONFIGURED: "The Better Auth API secret has not been configured.",
    DenialReason.INVALID_OR_MISSING: "Invalid or missing API secret.",
}


@dataclass(frozen=True)
class Verdict:
    """Outcome of a verification: authorized, or denied with a reason."""
    authorized: bool
    reason: Optional[DenialReason] = None

    def to_error(self) -> Optional[AuthorizationError]:
        if self.authorized:
            return None
        return AuthorizationError(_DENIAL_MESSAGES[self.reason], code=self.reason.value)


AUTHORIZED = Verdict(authorized=True)


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <token>``, or None if the header does not match."""
    if not header:
        return None
    match = BEARER_PATTERN.match(header.strip())
    return match.group(1) if match else None


class SecretVerifier:
    """Validate the inbound bearer credential against the configured secret."""

    def __init__(self, api_secret: str, allow_insecure_transport: bool = False):
        self._secret = api_secret or ""
        self.allow_insecure_transport = allow_insecure_transport

    @classmethod
    def from_config(cls, cfg) -> "SecretVerifier":
        return cls(cfg.api_secret, allow_insecure_transport=cfg.debug)

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, request) -> Verdict:
        """Decide whether the request may reach the sync handler.

        Args:
            request: Object exposing ``is_secure`` and ``authorization``

        Returns:
            Verdict (authorized, or denied with a DenialReason)
        """
        if not request.is_secure and not self.allow_insecure_transport:
            return Verdict(False, DenialReason.TRANSPORT_INSECURE)

        if not self._secret:
            return Verdict(False, DenialReason.NOT_CONFIGURED)

        token = extract_bearer_token(request.authorization)
        if not token:
            return Verdict(False, DenialReason.INVALID_OR_MISSING)

        # Constant-time comparison (timing-attack safe); bytes so non-ASCII input is accepted
        if not hmac.compare_digest(token.encode("utf-8"), self._secret.encode("utf-8")):
            return Verdict(False, DenialReason.INVALID_OR_MISSING)

        return AUTHORIZED
