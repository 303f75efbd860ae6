"""Gunicorn configuration file.

Secrets (API secret, database URL, SMTP password, audit key) are read by
authbridge.config.settings from /run/secrets or the environment when each
worker builds the app; this file only reports what is mounted.
"""
import os

wsgi_app = "authbridge.wsgi:app"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info")

# Forwarded headers are validated by the app against TRUSTED_PROXY_IPS
forwarded_allow_ips = os.environ.get("TRUSTED_PROXY_IPS", "127.0.0.1")

logconfig_dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "authbridge": {"level": loglevel.upper(), "handlers": ["console"], "propagate": False},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "generic", "stream": "ext://sys.stdout"},
    },
    "formatters": {
        "generic": {"format": "%(asctime)s [%(process)d] [%(levelname)s] %(name)s: %(message)s"},
    },
}


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    from pathlib import Path

    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
            return
    worker.log.info("No /run/secrets mount; settings fall back to environment variables")
