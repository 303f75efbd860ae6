"""Tests for payload sanitizers and validators."""
import pytest

from authbridge.core.validators import (
    email_local_part,
    sanitize_email,
    sanitize_login,
    sanitize_text_field,
    validate_email,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Jane Doe", "Jane Doe"),
        ("  Jane   Doe  ", "Jane Doe"),
        ("<b>Jane</b>", "Jane"),
        ("José", "Jose"),
        ("jane+tag", "janetag"),
        ("a%20b", "ab"),
        ("Tom &amp; Jerry", "Tom Jerry"),
        ("user.name-1_x@host", "user.name-1_x@host"),
        ("日本語", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_sanitize_login(raw, expected):
    assert sanitize_login(raw) == expected


def test_sanitize_login_truncates():
    assert sanitize_login("x" * 100) == "x" * 60


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  Jane\tDoe \n", "Jane Doe"),
        ("<script>alert(1)</script>Name", "alert(1)Name"),
        (42, ""),
        (None, ""),
    ],
)
def test_sanitize_text_field(raw, expected):
    assert sanitize_text_field(raw) == expected


def test_sanitize_email():
    assert sanitize_email(" jane@example.com \n") == "jane@example.com"
    assert sanitize_email(None) == ""


def test_validate_email_normalizes():
    assert validate_email("Jane@Example.COM") == "jane@example.com"


@pytest.mark.parametrize(
    "email",
    ["", "plain", "@example.com", "jane@", "jane@localhost", "jane@.example.com", "jane@example.com.", "a@" + "b" * 250 + ".com"],
)
def test_validate_email_rejects(email):
    with pytest.raises(ValueError):
        validate_email(email)


@pytest.mark.parametrize(
    "email, expected",
    [
        ("jane@example.com", "jane"),
        ("a@b@example.com", "a"),
        ("noatsign", "noatsign"),
    ],
)
def test_email_local_part(email, expected):
    assert email_local_part(email) == expected
