"""Input sanitizers and validators for sync payloads."""
from __future__ import annotations
import re
import unicodedata

LOGIN_MAX_LENGTH = 60
EMAIL_MAX_LENGTH = 254

_TAG_PATTERN = re.compile(r"<[^>]*>")
_OCTET_PATTERN = re.compile(r"%[a-fA-F0-9]{2}")
_ENTITY_PATTERN = re.compile(r"&.+?;")
_LOGIN_STRICT_PATTERN = re.compile(r"[^a-zA-Z0-9 _.\-@]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _remove_accents(raw: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def sanitize_text_field(raw) -> str:
    """Strip markup and control whitespace from a single-line text value.

    Non-string input yields an empty string.
    """
    if not isinstance(raw, str):
        return ""
    text = _TAG_PATTERN.sub("", raw)
    text = _OCTET_PATTERN.sub("", text)
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def sanitize_login(raw: str) -> str:
    """Reduce a display name or email local part to a safe login.

    Only ASCII letters, digits, space and ``_.-@`` survive.

    Args:
        raw: Raw login candidate

    Returns:
        Sanitized login (possibly empty), at most 60 characters
    """
    if not isinstance(raw, str):
        return ""
    login = _TAG_PATTERN.sub("", raw)
    login = _remove_accents(login)
    login = _OCTET_PATTERN.sub("", login)
    login = _ENTITY_PATTERN.sub("", login)
    login = _LOGIN_STRICT_PATTERN.sub("", login)
    login = _WHITESPACE_PATTERN.sub(" ", login).strip()
    return login[:LOGIN_MAX_LENGTH].strip()


def sanitize_email(raw) -> str:
    """Trim an email value; non-string input yields an empty string."""
    if not isinstance(raw, str):
        return ""
    return "".join(raw.split())


def validate_email(email: str) -> str:
    """Validate email address.

    Args:
        email: Email address to validate

    Returns:
        Normalized (lower-cased) email address

    Raises:
        ValueError: If email is invalid
    """
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValueError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValueError("Invalid email format")
    if domain.startswith(".") or domain.endswith("."):
        raise ValueError("Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError("Email exceeds maximum length")

    return email


def email_local_part(email: str) -> str:
    """Return everything before the first ``@`` (the whole value if none)."""
    return email.split("@", 1)[0]
