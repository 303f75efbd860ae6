"""Install, deactivate and uninstall steps for the bridge.

Uninstall order matters: linked users are notified and then deleted or
unlinked *before* the identity tables are dropped.
"""
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from . import audit
from .exceptions import NotificationError, StoreError
from .models import UninstallReport
from .schema import Tables

logger = logging.getLogger(__name__)


def install(engine: Engine, tables: Tables) -> None:
    """Create every table that does not exist yet (safe to re-run)."""
    tables.metadata.create_all(engine, checkfirst=True)
    logger.info(f"Installed tables: {', '.join(sorted(tables.metadata.tables))}")


def tables_exist(engine: Engine, tables: Tables) -> bool:
    """True when all four identity tables are present.

    Checked in drop order (verification, account, session, user); the
    first missing table short-circuits.
    """
    inspector = inspect(engine)
    for table in tables.identity_tables:
        if not inspector.has_table(table.name):
            return False
    return True


def deactivation_notice(identity_store) -> Optional[str]:
    """Warning text to show when the bridge is switched off while identities remain."""
    try:
        count = identity_store.count_identities()
    except StoreError as exc:
        logger.warning(f"Deactivation check could not count identities: {exc.message}")
        return None
    if count < 1:
        return None
    return (
        f"Better Auth has been deactivated, but {count} user record(s) remain in its tables. "
        "They will be removed when the bridge is uninstalled."
    )


def uninstall(
    engine: Engine,
    tables: Tables,
    directory,
    notifier,
    *,
    delete_users: bool = False,
) -> UninstallReport:
    """Tear down the bridge.

    1. Every linked account gets a password-setup email, then is deleted
       (``delete_users``) or unlinked.
    2. The four identity tables are dropped, children first.

    Email failures are logged and reported; they do not stop the run.
    """
    report = UninstallReport()

    for account in directory.list_linked_accounts():
        try:
            notifier.send_password_setup_email(account.login)
            report.notified.append(account.login)
        except NotificationError as exc:
            logger.warning(f"Uninstall: could not notify login={account.login!r}: {exc.message}")
            report.notification_failures[account.login] = exc.code

        if delete_users:
            directory.delete_account(account.id)
            report.deleted.append(account.id)
            audit.safe_log_sync_event("uninstall_delete", account.login, details={"wp_user_id": account.id})
        else:
            directory.delete_link_attribute(account.id)
            report.unlinked.append(account.id)
            audit.safe_log_sync_event("uninstall_unlink", account.login, details={"wp_user_id": account.id})

    for table in tables.identity_tables:
        table.drop(engine, checkfirst=True)
        report.dropped_tables.append(table.name)

    logger.info(
        f"Uninstall finished: notified={len(report.notified)} deleted={len(report.deleted)} "
        f"unlinked={len(report.unlinked)} dropped={report.dropped_tables}"
    )
    return report
