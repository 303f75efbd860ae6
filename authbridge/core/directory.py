"""Local account directory: the host user store behind the reconciler."""
from __future__ import annotations
import logging
import secrets
import string
from typing import Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import generate_password_hash

from .exceptions import AccountCreationError, StoreError
from .models import LocalAccount
from .schema import Tables

logger = logging.getLogger(__name__)

CREDENTIAL_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()"
SUFFIX_ALPHABET = string.ascii_letters + string.digits


class AccountDirectory:
    """Service for managing local accounts and their link attribute.

    The link attribute is stored as a ``usermeta`` row under
    ``link_meta_key``. Email lookups are case-insensitive.
    """

    def __init__(self, engine: Engine, tables: Tables, link_meta_key: str = "better_auth_user_id"):
        self.engine = engine
        self.tables = tables
        self.link_meta_key = link_meta_key

    # ─────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────

    def _account_query(self):
        users = self.tables.users
        meta = self.tables.usermeta
        link = (
            select(meta.c.user_id, meta.c.meta_value)
            .where(meta.c.meta_key == self.link_meta_key)
            .subquery("link")
        )
        return (
            select(
                users.c.ID,
                users.c.user_login,
                users.c.user_email,
                users.c.display_name,
                users.c.role,
                link.c.meta_value.label("link_attribute"),
            )
            .select_from(users.outerjoin(link, link.c.user_id == users.c.ID))
        )

    @staticmethod
    def _to_account(row) -> LocalAccount:
        return LocalAccount(
            id=row.ID,
            login=row.user_login,
            email=row.user_email,
            display_name=row.display_name or "",
            role=row.role,
            link_attribute=row.link_attribute or None,
        )

    def _fetch_one(self, stmt) -> Optional[LocalAccount]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as exc:
            logger.error(f"Account lookup failed: {exc}")
            raise StoreError("The account directory is unavailable.") from exc
        return self._to_account(row) if row is not None else None

    def find_by_email(self, email: str) -> Optional[LocalAccount]:
        users = self.tables.users
        stmt = self._account_query().where(func.lower(users.c.user_email) == email.strip().lower())
        return self._fetch_one(stmt)

    def find_by_login(self, login: str) -> Optional[LocalAccount]:
        stmt = self._account_query().where(self.tables.users.c.user_login == login)
        return self._fetch_one(stmt)

    def get_account(self, user_id: int) -> Optional[LocalAccount]:
        stmt = self._account_query().where(self.tables.users.c.ID == user_id)
        return self._fetch_one(stmt)

    def login_exists(self, login: str) -> bool:
        users = self.tables.users
        stmt = select(users.c.ID).where(users.c.user_login == login)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).first() is not None
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    def list_linked_accounts(self) -> list[LocalAccount]:
        """Every account carrying a non-empty link attribute."""
        users = self.tables.users
        meta = self.tables.usermeta
        stmt = (
            select(
                users.c.ID,
                users.c.user_login,
                users.c.user_email,
                users.c.display_name,
                users.c.role,
                meta.c.meta_value.label("link_attribute"),
            )
            .select_from(users.join(meta, meta.c.user_id == users.c.ID))
            .where(meta.c.meta_key == self.link_meta_key)
            .where(meta.c.meta_value != "")
            .order_by(users.c.ID)
        )
        try:
            with self.engine.connect() as conn:
                return [self._to_account(row) for row in conn.execute(stmt)]
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    # ─────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────

    def create_account(self, login: str, email: str, display_name: str, credential: str, role: str) -> int:
        """Insert a new account and return its id.

        The credential is stored as a hash only. The insert runs in its own
        transaction, so a rejected insert leaves nothing behind.

        Raises:
            AccountCreationError: If the store rejects the insert
        """
        stmt = insert(self.tables.users).values(
            user_login=login,
            user_email=email,
            display_name=display_name,
            user_pass=generate_password_hash(credential),
            role=role,
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
                user_id = int(result.inserted_primary_key[0])
        except IntegrityError as exc:
            logger.warning(f"Account insert rejected for login={login!r}: {exc.orig}")
            raise AccountCreationError("Could not create user: login or email already exists.") from exc
        except SQLAlchemyError as exc:
            logger.error(f"Account insert failed for login={login!r}: {exc}")
            raise AccountCreationError("Could not create user.") from exc
        logger.info(f"Created local account id={user_id} login={login!r} role={role}")
        return user_id

    def delete_account(self, user_id: int) -> None:
        users = self.tables.users
        meta = self.tables.usermeta
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(meta).where(meta.c.user_id == user_id))
                conn.execute(delete(users).where(users.c.ID == user_id))
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    # ─────────────────────────────────────────────────────────────────────
    # User meta
    # ─────────────────────────────────────────────────────────────────────

    def _upsert_meta(self, conn: Connection, user_id: int, key: str, value: str) -> None:
        meta = self.tables.usermeta
        result = conn.execute(
            update(meta)
            .where(meta.c.user_id == user_id)
            .where(meta.c.meta_key == key)
            .values(meta_value=value)
        )
        if result.rowcount == 0:
            conn.execute(insert(meta).values(user_id=user_id, meta_key=key, meta_value=value))

    def get_meta(self, user_id: int, key: str) -> Optional[str]:
        meta = self.tables.usermeta
        stmt = select(meta.c.meta_value).where(meta.c.user_id == user_id).where(meta.c.meta_key == key)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    def set_meta(self, user_id: int, key: str, value: str) -> None:
        try:
            with self.engine.begin() as conn:
                self._upsert_meta(conn, user_id, key, value)
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    def delete_meta(self, user_id: int, key: str) -> None:
        meta = self.tables.usermeta
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(meta).where(meta.c.user_id == user_id).where(meta.c.meta_key == key))
        except SQLAlchemyError as exc:
            raise StoreError("The account directory is unavailable.") from exc

    def get_link_attribute(self, user_id: int) -> Optional[str]:
        return self.get_meta(user_id, self.link_meta_key) or None

    def set_link_attribute(self, user_id: int, value: str) -> None:
        self.set_meta(user_id, self.link_meta_key, value)

    def delete_link_attribute(self, user_id: int) -> None:
        self.delete_meta(user_id, self.link_meta_key)

    # ─────────────────────────────────────────────────────────────────────
    # Random values
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def generate_credential(length: int = 24) -> str:
        """Long random password; never returned to any caller of the sync API."""
        return "".join(secrets.choice(CREDENTIAL_ALPHABET) for _ in range(length))

    @staticmethod
    def generate_random_suffix(length: int = 6) -> str:
        return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))
