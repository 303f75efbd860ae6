"""Sync reconciler: create or link one local account per external identity.

Per identity the state only moves forward:

    Unlinked --(email match)--> Linked
    Unlinked --(no match)-----> Created + Linked

Matching is by email only, so an identity never yields two accounts. An
existing link attribute is never overwritten, even when it names a
different identity; that case is logged and otherwise ignored.

Concurrent syncs for the same brand-new email race on the directory's
unique email constraint; the loser gets AccountCreationError.
"""
from __future__ import annotations
import dataclasses
import logging
from typing import Iterable

from . import audit
from .exceptions import BridgeError
from .models import BackfillReport, ExternalIdentity, LocalAccount, SyncCandidate
from .validators import (
    LOGIN_MAX_LENGTH,
    email_local_part,
    sanitize_login,
    sanitize_text_field,
    validate_email,
)

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIAL_LENGTH = 24
DEFAULT_SUFFIX_LENGTH = 6
FALLBACK_LOGIN = "user"


class SyncReconciler:
    """Resolve an external identity to a local account via the directory."""

    def __init__(
        self,
        directory,
        *,
        default_role: str = "subscriber",
        credential_length: int = DEFAULT_CREDENTIAL_LENGTH,
        suffix_length: int = DEFAULT_SUFFIX_LENGTH,
    ):
        self.directory = directory
        self.default_role = default_role
        self.credential_length = credential_length
        self.suffix_length = suffix_length

    @classmethod
    def from_config(cls, directory, cfg) -> "SyncReconciler":
        return cls(directory, default_role=cfg.default_role)

    def derive_login(self, candidate: SyncCandidate) -> str:
        """Pick a login for a new account.

        Sanitized name first, then the email local part. A taken login
        gets ``_`` plus a random suffix, once; the suffixed value is not
        re-checked.
        """
        login = sanitize_login(candidate.name) or sanitize_login(email_local_part(candidate.email))
        if not login:
            login = FALLBACK_LOGIN

        if self.directory.login_exists(login):
            suffix = self.directory.generate_random_suffix(self.suffix_length)[: self.suffix_length]
            base = login[: LOGIN_MAX_LENGTH - len(suffix) - 1]
            login = f"{base}_{suffix}"
        return login

    def reconcile(self, candidate: SyncCandidate, *, operator: str = "sync-api") -> LocalAccount:
        """Return the local account for the candidate, creating it if needed.

        Idempotent: repeating the call with the same candidate returns the
        same account and changes nothing.

        Raises:
            AccountCreationError: If the directory rejects the new account
            StoreError: If the directory is unavailable
        """
        email = candidate.email.strip().lower()

        existing = self.directory.find_by_email(email)
        if existing is not None:
            if not existing.is_linked:
                self.directory.set_link_attribute(existing.id, candidate.id)
                logger.info(f"Linked existing account id={existing.id} to identity={candidate.id}")
                audit.safe_log_sync_event(
                    "sync_linked",
                    candidate.id,
                    operator=operator,
                    details={"wp_user_id": existing.id, "user_login": existing.login},
                )
                return dataclasses.replace(existing, link_attribute=candidate.id)

            if existing.link_attribute != candidate.id:
                logger.info(
                    f"Account id={existing.id} already linked to identity={existing.link_attribute}; "
                    f"leaving link unchanged for identity={candidate.id}"
                )
            return existing

        login = self.derive_login(candidate)
        display_name = sanitize_text_field(candidate.name)
        credential = self.directory.generate_credential(self.credential_length)

        user_id = self.directory.create_account(
            login=login,
            email=email,
            display_name=display_name,
            credential=credential,
            role=self.default_role,
        )
        self.directory.set_link_attribute(user_id, candidate.id)

        audit.safe_log_sync_event(
            "sync_created",
            candidate.id,
            operator=operator,
            details={"wp_user_id": user_id, "user_login": login, "role": self.default_role},
        )
        return LocalAccount(
            id=user_id,
            login=login,
            email=email,
            display_name=display_name,
            role=self.default_role,
            link_attribute=candidate.id,
        )

    def sync_all(self, identities: Iterable[ExternalIdentity], *, operator: str = "backfill") -> BackfillReport:
        """Reconcile every identity in sequence.

        Failures are recorded per identity and do not stop the pass.
        """
        report = BackfillReport()
        for identity in identities:
            report.total += 1
            try:
                validate_email(identity.email or "")
            except ValueError:
                logger.warning(f"Backfill skipped identity={identity.id}: invalid email")
                report.failures[identity.id] = "rest_invalid_param"
                continue
            candidate = SyncCandidate(id=identity.id, email=identity.email, name=identity.name)
            try:
                account = self.reconcile(candidate, operator=operator)
            except BridgeError as exc:
                logger.warning(f"Backfill failed for identity={identity.id}: {exc.message}")
                report.failures[identity.id] = exc.code
                continue
            report.account_ids.append(account.id)

        audit.safe_log_sync_event(
            "backfill",
            "*",
            operator=operator,
            details={"total": report.total, "succeeded": report.succeeded, "failed": len(report.failures)},
            success=not report.failures,
        )
        logger.info(f"Backfill finished: {report.succeeded}/{report.total} identities reconciled")
        return report
