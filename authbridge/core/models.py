"""Typed records passed between the sync components."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import BridgeError


@dataclass(frozen=True)
class ExternalIdentity:
    """Row of the Better Auth user table (read-only here)."""
    id: str
    email: str
    name: str = ""


@dataclass(frozen=True)
class LocalAccount:
    """Host user record."""
    id: int
    login: str
    email: str
    display_name: str = ""
    role: str = ""
    link_attribute: Optional[str] = None

    @property
    def is_linked(self) -> bool:
        return bool(self.link_attribute)


@dataclass(frozen=True)
class SyncCandidate:
    """Already-validated input for the reconciler."""
    id: str
    email: str
    name: str = ""


@dataclass(frozen=True)
class SyncRequest:
    """Inbound sync request, decoupled from the web framework.

    Attributes:
        is_secure: Request arrived over TLS (after proxy resolution)
        authorization: Raw Authorization header, if any
        content_type: Media type without parameters (e.g. "application/json")
        body: Decoded JSON body, or None when absent/undecodable
    """
    is_secure: bool
    authorization: Optional[str] = None
    content_type: Optional[str] = None
    body: Optional[Any] = None


@dataclass(frozen=True)
class SyncResult:
    """Tagged outcome of a sync request: exactly one of account/error is set."""
    account: Optional[LocalAccount] = None
    error: Optional[BridgeError] = None

    @classmethod
    def success(cls, account: LocalAccount) -> "SyncResult":
        return cls(account=account)

    @classmethod
    def failure(cls, error: BridgeError) -> "SyncResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> int:
        return 200 if self.ok else self.error.status

    def to_dict(self) -> dict:
        """Response body for this outcome."""
        if not self.ok:
            return self.error.to_dict()
        return {
            "wp_user_id": self.account.id,
            "user_login": self.account.login,
            "user_email": self.account.email,
            "linked": True,
        }


@dataclass
class BackfillReport:
    """Summary of a bulk reconciliation pass."""
    total: int = 0
    account_ids: list[int] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.account_ids)


@dataclass
class UninstallReport:
    """Summary of an uninstall run."""
    notified: list[str] = field(default_factory=list)
    notification_failures: dict[str, str] = field(default_factory=dict)
    deleted: list[int] = field(default_factory=list)
    unlinked: list[int] = field(default_factory=list)
    dropped_tables: list[str] = field(default_factory=list)
