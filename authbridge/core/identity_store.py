"""Read-only access to the Better Auth identity tables."""
from __future__ import annotations
import logging
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import StoreError
from .models import ExternalIdentity
from .schema import Tables

logger = logging.getLogger(__name__)


class IdentityStore:
    """Queries over ``ba_user`` and ``ba_account``.

    No caching: every call reflects the current state of the store.
    Store failures raise StoreError and are never reported as "not found".
    """

    def __init__(self, engine: Engine, tables: Tables):
        self.engine = engine
        self.tables = tables

    def find_identity(self, identity_id: str) -> Optional[ExternalIdentity]:
        """Return the identity row with this id, or None."""
        user = self.tables.ba_user
        stmt = select(user.c.id, user.c.name, user.c.email).where(user.c.id == identity_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as exc:
            logger.error(f"Identity lookup failed for id={identity_id}: {exc}")
            raise StoreError("The identity store is unavailable.") from exc
        if row is None:
            return None
        return ExternalIdentity(id=row.id, email=row.email, name=row.name or "")

    def count_linked_accounts(self, identity_id: str) -> int:
        """Number of provider account rows attached to the identity."""
        account = self.tables.ba_account
        stmt = select(func.count()).select_from(account).where(account.c.userId == identity_id)
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            logger.error(f"Account count failed for id={identity_id}: {exc}")
            raise StoreError("The identity store is unavailable.") from exc

    def iter_identities(self) -> Iterator[ExternalIdentity]:
        """Yield every identity row (used by the backfill pass)."""
        user = self.tables.ba_user
        stmt = select(user.c.id, user.c.name, user.c.email).order_by(user.c.createdAt, user.c.id)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.error(f"Identity listing failed: {exc}")
            raise StoreError("The identity store is unavailable.") from exc
        for row in rows:
            yield ExternalIdentity(id=row.id, email=row.email, name=row.name or "")

    def count_identities(self) -> int:
        stmt = select(func.count()).select_from(self.tables.ba_user)
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise StoreError("The identity store is unavailable.") from exc
