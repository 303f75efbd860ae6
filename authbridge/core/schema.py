"""Table definitions for the identity tables and the local account directory.

The four ``ba_*`` tables mirror the Better Auth schema and are written by
the upstream provider; this service only reads them. ``users`` and
``usermeta`` form the local account directory.

There are no foreign keys between the identity tables: ``account.userId``
and ``session.userId`` reference ``user.id`` by convention only.
"""
from __future__ import annotations
from dataclasses import dataclass

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)


@dataclass(frozen=True)
class Tables:
    metadata: MetaData
    ba_user: Table
    ba_session: Table
    ba_account: Table
    ba_verification: Table
    users: Table
    usermeta: Table

    @property
    def identity_tables(self) -> list[Table]:
        """Identity tables, children first (drop order)."""
        return [self.ba_verification, self.ba_account, self.ba_session, self.ba_user]


def build_tables(prefix: str = "wp_") -> Tables:
    """Define every table under the given name prefix on a fresh MetaData."""
    metadata = MetaData()

    ba_user = Table(
        f"{prefix}ba_user",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("name", Text, nullable=True),
        Column("email", String(255), nullable=False),
        Column("emailVerified", Boolean, nullable=False, default=False),
        Column("image", Text, nullable=True),
        Column("createdAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Column("updatedAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Index(f"{prefix}ba_user_email", "email"),
    )

    ba_session = Table(
        f"{prefix}ba_session",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("expiresAt", TIMESTAMP, nullable=False),
        Column("token", String(255), nullable=False, unique=True),
        Column("createdAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Column("updatedAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Column("ipAddress", Text, nullable=True),
        Column("userAgent", Text, nullable=True),
        Column("userId", String(36), nullable=False),
        Index(f"{prefix}ba_session_userId", "userId"),
    )

    ba_account = Table(
        f"{prefix}ba_account",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("accountId", Text, nullable=False),
        Column("providerId", Text, nullable=False),
        Column("userId", String(36), nullable=False),
        Column("accessToken", Text, nullable=True),
        Column("refreshToken", Text, nullable=True),
        Column("idToken", Text, nullable=True),
        Column("accessTokenExpiresAt", TIMESTAMP, nullable=True),
        Column("refreshTokenExpiresAt", TIMESTAMP, nullable=True),
        Column("scope", Text, nullable=True),
        Column("password", String(255), nullable=True),
        Column("createdAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Column("updatedAt", TIMESTAMP, nullable=False, server_default=func.now()),
        Index(f"{prefix}ba_account_userId", "userId"),
    )

    ba_verification = Table(
        f"{prefix}ba_verification",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("identifier", Text, nullable=False),
        Column("value", Text, nullable=False),
        Column("expiresAt", TIMESTAMP, nullable=False),
        Column("createdAt", TIMESTAMP, nullable=True, server_default=func.now()),
        Column("updatedAt", TIMESTAMP, nullable=True, server_default=func.now()),
    )

    users = Table(
        f"{prefix}users",
        metadata,
        Column("ID", Integer, primary_key=True, autoincrement=True),
        Column("user_login", String(60), nullable=False, unique=True),
        Column("user_pass", String(255), nullable=False),
        Column("user_email", String(100), nullable=False, unique=True),
        Column("display_name", String(250), nullable=False, default=""),
        Column("role", String(64), nullable=False),
        Column("user_registered", TIMESTAMP, nullable=False, server_default=func.now()),
    )

    usermeta = Table(
        f"{prefix}usermeta",
        metadata,
        Column("umeta_id", Integer, primary_key=True, autoincrement=True),
        Column("user_id", Integer, nullable=False, index=True),
        Column("meta_key", String(255), nullable=False),
        Column("meta_value", Text, nullable=True),
        UniqueConstraint("user_id", "meta_key", name=f"{prefix}usermeta_user_key"),
    )

    return Tables(
        metadata=metadata,
        ba_user=ba_user,
        ba_session=ba_session,
        ba_account=ba_account,
        ba_verification=ba_verification,
        users=users,
        usermeta=usermeta,
    )
