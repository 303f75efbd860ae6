"""Better Auth sync endpoint.

    POST /better-auth/v1/sync-user
    Authorization: Bearer <shared-secret>
    Content-Type: application/json

    {"id": "<better-auth-user-id>", "email": "user@example.com", "name": "Jane"}

All decisions live in authbridge.core.sync_handler; this blueprint only
translates between Flask and SyncRequest/SyncResult.
"""

from __future__ import annotations
import hashlib
import logging

from flask import Blueprint, current_app, jsonify, request

from authbridge.core.exceptions import ValidationError
from authbridge.core.models import SyncRequest, SyncResult
from authbridge.core.secret_verifier import extract_bearer_token

bp = Blueprint("sync", __name__, url_prefix="/better-auth/v1")

# Configuration
JSON_MAX_SIZE_BYTES = 65536  # 64 KB

logger = logging.getLogger(__name__)


def _services():
    return current_app.extensions["authbridge"]


def _log_sync_attempt(status: int, code: str | None):
    """Log a sync attempt without leaking the bearer token.

    Security:
        - Only logs SHA256 hash of the token (truncated to 12 chars)
        - Includes correlation_id, client_ip, path
    """
    token = extract_bearer_token(request.headers.get("Authorization")) or ""
    token_hash = hashlib.sha256(token.encode()).hexdigest()[:12] if token else "none"

    correlation_id = request.headers.get("X-Correlation-Id", "none")
    client_ip = request.headers.get("X-Forwarded-For", request.remote_addr)

    outcome = "✅ SUCCESS" if status == 200 else f"❌ {code}"
    logger.info(
        f"{outcome} sync-user | status={status} | token_hash={token_hash} | "
        f"path={request.path} | correlation_id={correlation_id} | client_ip={client_ip}"
    )


@bp.errorhandler(413)
def handle_request_too_large(error):
    """Handle payload too large errors."""
    err = ValidationError("Request payload exceeds maximum allowed size (64 KB).", code="rest_payload_too_large", status=413)
    return jsonify(err.to_dict()), 413


@bp.route("/sync-user", methods=["POST"])
def sync_user():
    """Create or link the local account for a Better Auth user."""
    services = _services()

    # Gate before the body is read: unauthenticated callers get 403 whatever they send
    verdict = services.verifier.verify(
        SyncRequest(is_secure=request.is_secure, authorization=request.headers.get("Authorization"))
    )
    if not verdict.authorized:
        result = SyncResult.failure(verdict.to_error())
        _log_sync_attempt(result.status, result.error.code)
        return jsonify(result.to_dict()), result.status

    if request.content_length and request.content_length > JSON_MAX_SIZE_BYTES:
        err = ValidationError("Request payload too large.", code="rest_payload_too_large", status=413)
        _log_sync_attempt(err.status, err.code)
        return jsonify(err.to_dict()), err.status

    sync_request = SyncRequest(
        is_secure=request.is_secure,
        authorization=request.headers.get("Authorization"),
        content_type=request.mimetype,
        body=request.get_json(silent=True),
    )

    result = services.handler.handle(sync_request)
    _log_sync_attempt(result.status, None if result.ok else result.error.code)
    return jsonify(result.to_dict()), result.status
