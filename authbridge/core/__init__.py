"""Core Business Logic Module

This module provides the user-sync logic of the bridge, independent of
the HTTP framework.

Architecture:
    - Pure Python + SQLAlchemy Core (no Flask dependencies)
    - Collaborators are injected at construction time
    - Reusable across interfaces (REST endpoint, admin CLI)

Module Structure:
    - schema.py          : Table definitions (identity tables + local accounts)
    - models.py          : Typed records and request/result values
    - exceptions.py      : Error taxonomy (BridgeError and subclasses)
    - identity_store.py  : Read access to the external identity tables
    - directory.py       : Local account directory (lookup, create, link)
    - secret_verifier.py : Shared-secret bearer gate
    - reconciler.py      : Create-or-link decision per external identity
    - sync_handler.py    : Request validation + orchestration
    - notifications.py   : Password-setup emails
    - lifecycle.py       : Install / deactivate / uninstall steps
    - validators.py      : Sanitizers for logins, text fields and emails
    - audit.py           : Signed JSONL audit trail

Usage Pattern:
    Import explicitly when needed:
        from authbridge.core.reconciler import SyncReconciler
        from authbridge.core.sync_handler import SyncHandler
"""
