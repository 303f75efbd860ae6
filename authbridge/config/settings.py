"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_flag(var_name: str, default: bool = False) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool
    debug: bool = False

    # Sync endpoint
    api_secret: str = ""

    # Storage
    database_url: str = ""
    table_prefix: str = "wp_"

    # Local accounts
    default_role: str = "subscriber"
    link_meta_key: str = "better_auth_user_id"
    delete_users_on_uninstall: bool = False

    # Proxy
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"

    # Password setup emails
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    password_reset_url: str = "https://localhost/reset-password"

    # Audit
    audit_log_signing_key: str = ""

    @property
    def sync_enabled(self) -> bool:
        """An empty API secret means the sync endpoint is switched off."""
        return bool(self.api_secret)


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_flag("DEMO_MODE")
    is_testing = os.environ.get("PYTEST_CURRENT_TEST") is not None

    # ─────────────────────────────────────────────────────────────────────────
    # Secrets: /run/secrets > environment variables
    # ─────────────────────────────────────────────────────────────────────────
    api_secret = _load_secret_from_file("better_auth_api_secret", "BETTER_AUTH_API_SECRET") or ""
    if not api_secret:
        print("[settings] WARNING: BETTER_AUTH_API_SECRET not set, /sync-user is disabled")

    database_url = _load_secret_from_file("database_url", "DATABASE_URL") or ""
    if not database_url:
        if demo_mode or is_testing:
            database_url = "sqlite:///.runtime/authbridge.db"
            if demo_mode:
                print(f"[demo-mode] Using default DATABASE_URL={database_url}")
        else:
            raise RuntimeError("DATABASE_URL is required when DEMO_MODE is false.")

    smtp_password = _load_secret_from_file("smtp_password", "SMTP_PASSWORD") or ""

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if audit_log_signing_key:
        # The audit trail reads its key from the environment on every event
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key
    elif demo_mode:
        audit_log_signing_key = os.environ.get(
            "AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production"
        )
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key
        print(f"[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY: {audit_log_signing_key[:20]}...")
    else:
        print("[settings] WARNING: AUDIT_LOG_SIGNING_KEY not set, audit events are unsigned")

    # Trusted proxies
    trusted_proxy_ips = os.environ.get("TRUSTED_PROXY_IPS")
    if not trusted_proxy_ips:
        if demo_mode or is_testing:
            trusted_proxy_ips = "127.0.0.1/32,::1/128"
        else:
            raise RuntimeError("TRUSTED_PROXY_IPS is required when DEMO_MODE is false.")

    smtp_user = os.environ.get("SMTP_USER", "")

    cfg = AppConfig(
        demo_mode=demo_mode,
        debug=_env_flag("BRIDGE_DEBUG"),
        api_secret=api_secret,
        database_url=database_url,
        table_prefix=os.environ.get("TABLE_PREFIX", "wp_"),
        default_role=os.environ.get("SYNC_DEFAULT_ROLE", "subscriber").strip().lower() or "subscriber",
        link_meta_key=os.environ.get("LINK_META_KEY", "better_auth_user_id"),
        delete_users_on_uninstall=_env_flag("DELETE_USERS_ON_UNINSTALL"),
        trusted_proxy_ips=trusted_proxy_ips,
        smtp_host=os.environ.get("SMTP_HOST", "localhost"),
        smtp_port=int(os.environ.get("SMTP_PORT", "587")),
        smtp_user=smtp_user,
        smtp_password=smtp_password,
        smtp_from=os.environ.get("SMTP_FROM", smtp_user),
        password_reset_url=os.environ.get("PASSWORD_RESET_URL", "https://localhost/reset-password"),
        audit_log_signing_key=audit_log_signing_key,
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; prefix={cfg.table_prefix}; sync_enabled={cfg.sync_enabled}")
    if cfg.debug:
        print("[settings] WARNING: BRIDGE_DEBUG=true accepts sync requests over plain HTTP.")

    return cfg
