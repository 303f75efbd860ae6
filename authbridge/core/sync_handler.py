"""Sync endpoint handler: validate, gate and reconcile one sync request.

Flow:
    SecretVerifier -> content type -> fields -> identity lookup
    -> linked-account check -> SyncReconciler

Validation happens once here; the reconciler only ever sees a typed,
already-valid SyncCandidate. Every failure comes back as a SyncResult
carrying a BridgeError, never as an exception.
"""
from __future__ import annotations
import logging
from typing import Optional

from . import audit
from .exceptions import BridgeError, NotFoundError, PreconditionError, ValidationError
from .models import SyncCandidate, SyncRequest, SyncResult
from .validators import sanitize_email, sanitize_text_field, validate_email

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


def _media_type(content_type: Optional[str]) -> str:
    """``application/json; charset=utf-8`` -> ``application/json``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def parse_candidate(body) -> SyncCandidate:
    """Decode and validate the request body into a SyncCandidate.

    Raises:
        ValidationError: Missing ``id``/``email`` or malformed email
    """
    if not isinstance(body, dict):
        body = {}

    identity_id = sanitize_text_field(body.get("id"))
    email = sanitize_email(body.get("email"))
    name = sanitize_text_field(body.get("name"))

    if not identity_id or not email:
        raise ValidationError('Both "id" and "email" are required.', code="rest_missing_params")

    try:
        email = validate_email(email)
    except ValueError as exc:
        raise ValidationError(f"Invalid parameter(s): email ({exc})", code="rest_invalid_param") from exc

    return SyncCandidate(id=identity_id, email=email, name=name)


class SyncHandler:
    """Contract: ``handle(request) -> SyncResult``."""

    def __init__(self, verifier, identity_store, reconciler):
        self.verifier = verifier
        self.identity_store = identity_store
        self.reconciler = reconciler

    def handle(self, request: SyncRequest) -> SyncResult:
        verdict = self.verifier.verify(request)
        if not verdict.authorized:
            # Denied requests never reach the store
            return SyncResult.failure(verdict.to_error())

        try:
            account = self._sync(request)
        except BridgeError as exc:
            logger.info(f"Sync rejected: code={exc.code} status={exc.status}")
            return SyncResult.failure(exc)
        return SyncResult.success(account)

    def _sync(self, request: SyncRequest):
        if _media_type(request.content_type) != JSON_MEDIA_TYPE:
            raise ValidationError(
                "Content-Type must be application/json.",
                code="rest_invalid_content_type",
                status=415,
            )

        requested = parse_candidate(request.body)

        identity = self.identity_store.find_identity(requested.id)
        if identity is None:
            raise NotFoundError("No Better Auth user found with the provided ID.", code="rest_ba_user_not_found")

        if self.identity_store.count_linked_accounts(requested.id) < 1:
            audit.safe_log_sync_event(
                "sync_rejected",
                requested.id,
                operator="sync-api",
                details={"code": "rest_ba_no_account"},
                success=False,
            )
            raise PreconditionError(
                "The Better Auth user has no account records. "
                "A linked account is required before syncing.",
                code="rest_ba_no_account",
            )

        # Caller-supplied values win over the stored row
        candidate = SyncCandidate(
            id=requested.id,
            email=requested.email,
            name=requested.name or sanitize_text_field(identity.name),
        )
        return self.reconciler.reconcile(candidate, operator="sync-api")
