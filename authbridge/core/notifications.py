"""Password-setup emails for synced accounts.

Synced accounts get a random credential nobody knows. When such a user
needs a local password (or the bridge is being removed), they receive a
reset link. Only a hash of the reset key is stored.
"""
from __future__ import annotations
import datetime
import hashlib
import logging
import secrets
import smtplib
from email.message import EmailMessage
from urllib.parse import urlencode

from . import audit
from .exceptions import NotFoundError, NotificationError, PreconditionError

logger = logging.getLogger(__name__)

RESET_KEY_META = "password_reset_key"
SMTP_TIMEOUT = 10


class PasswordSetupNotifier:
    """Issue reset keys and send the "set your password" email."""

    def __init__(
        self,
        directory,
        *,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        smtp_from: str = "",
        reset_url: str = "https://localhost/reset-password",
    ):
        self.directory = directory
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_from = smtp_from or smtp_user or "no-reply@localhost"
        self.reset_url = reset_url

    @classmethod
    def from_config(cls, directory, cfg) -> "PasswordSetupNotifier":
        return cls(
            directory,
            smtp_host=cfg.smtp_host,
            smtp_port=cfg.smtp_port,
            smtp_user=cfg.smtp_user,
            smtp_password=cfg.smtp_password,
            smtp_from=cfg.smtp_from,
            reset_url=cfg.password_reset_url,
        )

    def _issue_reset_key(self, user_id: int) -> str:
        key = secrets.token_urlsafe(24)
        issued_at = int(datetime.datetime.now(datetime.timezone.utc).timestamp())
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        self.directory.set_meta(user_id, RESET_KEY_META, f"{issued_at}:{digest}")
        return key

    def _build_message(self, login: str, email: str, key: str) -> EmailMessage:
        link = f"{self.reset_url}?{urlencode({'key': key, 'login': login})}"
        message = EmailMessage()
        message["Subject"] = "Set your password"
        message["From"] = self.smtp_from
        message["To"] = email
        message.set_content(
            f"Someone requested a password for the account: {login}\n\n"
            f"To set your password, visit the following address:\n\n{link}\n\n"
            "If this was a mistake, ignore this email and nothing will happen.\n"
        )
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=SMTP_TIMEOUT) as server:
            if self.smtp_user and self.smtp_password:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(message)

    def send_password_setup_email(self, login: str) -> bool:
        """Generate a reset key for ``login`` and email the reset link.

        Raises:
            NotFoundError: No account with this login
            NotificationError: SMTP delivery failed
        """
        account = self.directory.find_by_login(login)
        if account is None:
            raise NotFoundError("User not found.", code="invalid_user")

        key = self._issue_reset_key(account.id)
        message = self._build_message(account.login, account.email, key)
        try:
            self._deliver(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Password setup email failed for login={login!r}: {exc}")
            audit.safe_log_sync_event(
                "password_setup", login, details={"error": type(exc).__name__}, success=False
            )
            raise NotificationError("The password setup email could not be sent.") from exc

        logger.info(f"Password setup email sent for login={login!r}")
        audit.safe_log_sync_event("password_setup", login, details={"wp_user_id": account.id})
        return True

    def send_password_setup_for_linked_user(self, user_id: int) -> bool:
        """Send the password-setup email, but only to accounts created or linked by sync.

        Raises:
            NotFoundError: ``invalid_user`` when the account does not exist
            PreconditionError: ``not_better_auth_user`` when it carries no link
            NotificationError: SMTP delivery failed
        """
        account = self.directory.get_account(user_id)
        if account is None:
            raise NotFoundError("User not found.", code="invalid_user")
        if not account.is_linked:
            raise PreconditionError(
                "This user is not linked to a Better Auth account.", code="not_better_auth_user"
            )
        return self.send_password_setup_email(account.login)
