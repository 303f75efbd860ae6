"""Wiring: build every core component from one AppConfig.

Shared by the Flask factory and the admin CLI so both run against the
same engine, tables and configuration.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from authbridge.config import AppConfig
from authbridge.core.directory import AccountDirectory
from authbridge.core.identity_store import IdentityStore
from authbridge.core.notifications import PasswordSetupNotifier
from authbridge.core.reconciler import SyncReconciler
from authbridge.core.schema import Tables, build_tables
from authbridge.core.secret_verifier import SecretVerifier
from authbridge.core.sync_handler import SyncHandler


@dataclass
class BridgeServices:
    config: AppConfig
    engine: Engine
    tables: Tables
    identity_store: IdentityStore
    directory: AccountDirectory
    verifier: SecretVerifier
    reconciler: SyncReconciler
    handler: SyncHandler
    notifier: PasswordSetupNotifier


def create_db_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine; make sure a local SQLite directory exists."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, pool_pre_ping=True, future=True)


def build_services(cfg: AppConfig, engine: Optional[Engine] = None) -> BridgeServices:
    engine = engine or create_db_engine(cfg.database_url)
    tables = build_tables(cfg.table_prefix)

    identity_store = IdentityStore(engine, tables)
    directory = AccountDirectory(engine, tables, link_meta_key=cfg.link_meta_key)
    verifier = SecretVerifier.from_config(cfg)
    reconciler = SyncReconciler.from_config(directory, cfg)

    return BridgeServices(
        config=cfg,
        engine=engine,
        tables=tables,
        identity_store=identity_store,
        directory=directory,
        verifier=verifier,
        reconciler=reconciler,
        handler=SyncHandler(verifier, identity_store, reconciler),
        notifier=PasswordSetupNotifier.from_config(directory, cfg),
    )
