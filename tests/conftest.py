"""Pytest shared fixtures for the bridge tests."""
import datetime
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "false")
os.environ.setdefault("TRUSTED_PROXY_IPS", "127.0.0.1/32,::1/128")

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from authbridge.config.settings import AppConfig
from authbridge.core import audit, lifecycle
from authbridge.core.schema import build_tables
from authbridge.flask_app import create_app
from authbridge.services import build_services

API_SECRET = "correct-secret"


# ─────────────────────────────────────────────────────────────────────────────
# Audit isolation
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _isolated_audit_log(monkeypatch, tmp_path):
    """Keep every test's audit trail out of the working tree."""
    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "sync-events.jsonl")
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY_FILE", raising=False)
    return audit_dir


# ─────────────────────────────────────────────────────────────────────────────
# Configuration and storage
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        debug=False,
        api_secret=API_SECRET,
        database_url="sqlite://",
        table_prefix="wp_",
        default_role="subscriber",
        link_meta_key="better_auth_user_id",
        delete_users_on_uninstall=False,
        trusted_proxy_ips="127.0.0.1/32,::1/128",
        smtp_host="smtp.test",
        smtp_port=587,
        smtp_user="",
        smtp_password="",
        smtp_from="bridge@example.com",
        password_reset_url="https://example.com/reset",
        audit_log_signing_key="test-signing-key-for-audit-trail",
    )
    base.update(overrides)
    return AppConfig(**base)


def make_engine():
    """In-memory SQLite shared across connections."""
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture()
def config():
    return make_config()


@pytest.fixture()
def engine():
    eng = make_engine()
    yield eng
    eng.dispose()


@pytest.fixture()
def tables(engine):
    tbls = build_tables("wp_")
    lifecycle.install(engine, tbls)
    return tbls


@pytest.fixture()
def services(config, engine, tables):
    return build_services(config, engine)


@pytest.fixture()
def client(config, engine, tables):
    """Flask test client over an in-memory database (HTTPS base URL)."""
    flask_app = create_app(config, engine)
    flask_app.config.update(TESTING=True)
    with flask_app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# Data helpers
# ─────────────────────────────────────────────────────────────────────────────
def add_identity(engine, tables, identity_id: str, email: str, name: str = "", accounts: int = 1) -> None:
    """Insert a Better Auth user row and ``accounts`` provider account rows."""
    now = datetime.datetime(2026, 1, 1, 12, 0, 0)
    with engine.begin() as conn:
        conn.execute(
            insert(tables.ba_user).values(
                id=identity_id, name=name, email=email, emailVerified=True, createdAt=now, updatedAt=now
            )
        )
        for index in range(accounts):
            conn.execute(
                insert(tables.ba_account).values(
                    id=f"{identity_id}-acct-{index}",
                    accountId=f"{identity_id}-provider-{index}",
                    providerId="credential",
                    userId=identity_id,
                    createdAt=now,
                    updatedAt=now,
                )
            )


def add_local_user(directory, login: str, email: str, link: str | None = None, display_name: str = "") -> int:
    user_id = directory.create_account(
        login=login, email=email, display_name=display_name, credential="x" * 24, role="subscriber"
    )
    if link:
        directory.set_link_attribute(user_id, link)
    return user_id
