"""Unit tests for the shared-secret bearer gate."""
import pytest

from authbridge.core.exceptions import AuthorizationError
from authbridge.core.models import SyncRequest
from authbridge.core.secret_verifier import (
    DenialReason,
    SecretVerifier,
    extract_bearer_token,
)


def _request(authorization=None, is_secure=True):
    return SyncRequest(is_secure=is_secure, authorization=authorization, content_type="application/json")


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc123", "abc123"),
        ("bearer abc123", "abc123"),
        ("BEARER   abc123", "abc123"),
        ("  Bearer abc123  ", "abc123"),
        ("Bearer", None),
        ("Bearer a b", None),
        ("Basic abc123", None),
        ("abc123", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_correct_secret_is_authorized():
    verdict = SecretVerifier("s3cret").verify(_request("Bearer s3cret"))
    assert verdict.authorized is True
    assert verdict.reason is None
    assert verdict.to_error() is None


def test_wrong_secret_is_denied():
    verdict = SecretVerifier("s3cret").verify(_request("Bearer wrong"))
    assert verdict.authorized is False
    assert verdict.reason is DenialReason.INVALID_OR_MISSING


def test_missing_header_is_denied():
    verdict = SecretVerifier("s3cret").verify(_request(None))
    assert verdict.reason is DenialReason.INVALID_OR_MISSING


def test_secret_comparison_is_case_sensitive():
    verdict = SecretVerifier("s3cret").verify(_request("Bearer S3CRET"))
    assert verdict.authorized is False


def test_non_ascii_secret_is_accepted():
    verdict = SecretVerifier("pässwörd").verify(_request("Bearer pässwörd"))
    assert verdict.authorized is True


def test_empty_secret_disables_endpoint_even_with_empty_token():
    verifier = SecretVerifier("")
    assert verifier.configured is False
    verdict = verifier.verify(_request("Bearer "))
    assert verdict.reason is DenialReason.NOT_CONFIGURED


def test_plain_http_is_denied_before_secret_checks():
    # Insecure transport wins even when the secret is missing and the token is wrong
    verdict = SecretVerifier("").verify(_request("Bearer nope", is_secure=False))
    assert verdict.reason is DenialReason.TRANSPORT_INSECURE


def test_debug_override_allows_plain_http():
    verifier = SecretVerifier("s3cret", allow_insecure_transport=True)
    assert verifier.verify(_request("Bearer s3cret", is_secure=False)).authorized is True


def test_from_config_uses_debug_flag():
    class Cfg:
        api_secret = "abc"
        debug = True

    verifier = SecretVerifier.from_config(Cfg())
    assert verifier.configured is True
    assert verifier.allow_insecure_transport is True


@pytest.mark.parametrize(
    "reason, code",
    [
        (DenialReason.TRANSPORT_INSECURE, "rest_forbidden_ssl"),
        (DenialReason.NOT_CONFIGURED, "rest_forbidden_no_secret"),
        (DenialReason.INVALID_OR_MISSING, "rest_forbidden_invalid_secret"),
    ],
)
def test_denials_map_to_forbidden_errors(reason, code):
    from authbridge.core.secret_verifier import Verdict

    error = Verdict(False, reason).to_error()
    assert isinstance(error, AuthorizationError)
    assert error.status == 403
    assert error.code == code
    assert error.to_dict()["data"] == {"status": 403}
