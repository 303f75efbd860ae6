"""Admin CLI for the Better Auth bridge: install, backfill, uninstall, push-user.

This module serves as a CLI wrapper around authbridge.core services.
"""
from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path

import requests

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from authbridge.config import load_settings
from authbridge.core import lifecycle
from authbridge.core.exceptions import BridgeError
from authbridge.services import build_services

REQUEST_TIMEOUT = 10


def push_user(url: str, secret: str, identity_id: str, email: str, name: str = "") -> requests.Response:
    """POST a sync request the way the upstream provider does."""
    payload = {"id": identity_id, "email": email}
    if name:
        payload["name"] = name
    return requests.post(
        url,
        json=payload,
        headers={"Authorization": f"Bearer {secret}"},
        timeout=REQUEST_TIMEOUT,
    )


def main() -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Better Auth bridge admin helper")
    parser.add_argument("--operator", default="cli", help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("install", help="Create the identity and account tables")
    sub.add_parser("check-tables", help="Exit 0 when all identity tables exist")
    sub.add_parser("backfill", help="Create or link local accounts for every identity")
    sub.add_parser("deactivate", help="Print the deactivation warning, if any")

    su = sub.add_parser("uninstall", help="Notify linked users, remove links or users, drop identity tables")
    su.add_argument("--delete-users", action="store_true", default=None,
                    help="Delete linked users (default: DELETE_USERS_ON_UNINSTALL)")
    su.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sp = sub.add_parser("send-password-setup")
    sp.add_argument("--user-id", type=int, required=True)

    pu = sub.add_parser("push-user", help="Send a sync request to a running bridge")
    pu.add_argument("--url", default=os.environ.get("BRIDGE_SYNC_URL", "https://localhost/better-auth/v1/sync-user"))
    pu.add_argument("--secret", default=os.environ.get("BETTER_AUTH_API_SECRET"))
    pu.add_argument("--id", dest="identity_id", required=True)
    pu.add_argument("--email", required=True)
    pu.add_argument("--name", default="")

    args = parser.parse_args()

    if not args.cmd:
        parser.print_help()
        return

    if args.cmd == "push-user":
        if not args.secret:
            parser.error("Missing API secret (--secret or BETTER_AUTH_API_SECRET)")
        try:
            resp = push_user(args.url, args.secret, args.identity_id, args.email, args.name)
        except requests.RequestException as e:
            print(f"[push-user] Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(resp.text)
        if resp.status_code != 200:
            sys.exit(1)
        return

    cfg = load_settings()
    services = build_services(cfg)

    if args.cmd == "install":
        lifecycle.install(services.engine, services.tables)
        print("[install] Tables ready")
    elif args.cmd == "check-tables":
        present = lifecycle.tables_exist(services.engine, services.tables)
        print(f"[check-tables] {'all present' if present else 'missing'}")
        if not present:
            sys.exit(1)
    elif args.cmd == "backfill":
        try:
            report = services.reconciler.sync_all(services.identity_store.iter_identities(), operator=args.operator)
        except BridgeError as e:
            print(f"[backfill] Error: {e.message}", file=sys.stderr)
            sys.exit(1)
        print(f"[backfill] {report.succeeded}/{report.total} identities reconciled")
        for identity_id, code in report.failures.items():
            print(f"[backfill] {identity_id}: {code}", file=sys.stderr)
        if report.failures:
            sys.exit(1)
    elif args.cmd == "deactivate":
        notice = lifecycle.deactivation_notice(services.identity_store)
        if notice:
            print(f"[deactivate] WARNING: {notice}")
    elif args.cmd == "uninstall":
        delete_users = cfg.delete_users_on_uninstall if args.delete_users is None else args.delete_users
        if not args.yes:
            action = "DELETE" if delete_users else "unlink"
            answer = input(f"This will {action} every synced user and drop the identity tables. Continue? [y/N] ")
            if answer.strip().lower() not in {"y", "yes"}:
                print("[uninstall] Aborted")
                return
        try:
            report = lifecycle.uninstall(
                services.engine,
                services.tables,
                services.directory,
                services.notifier,
                delete_users=delete_users,
            )
        except BridgeError as e:
            print(f"[uninstall] Error: {e.message}", file=sys.stderr)
            sys.exit(1)
        print(
            f"[uninstall] notified={len(report.notified)} deleted={len(report.deleted)} "
            f"unlinked={len(report.unlinked)} dropped={', '.join(report.dropped_tables)}"
        )
        for login, code in report.notification_failures.items():
            print(f"[uninstall] could not notify {login}: {code}", file=sys.stderr)
    elif args.cmd == "send-password-setup":
        try:
            services.notifier.send_password_setup_for_linked_user(args.user_id)
        except BridgeError as e:
            print(f"[send-password-setup] Error ({e.code}): {e.message}", file=sys.stderr)
            sys.exit(1)
        print(f"[send-password-setup] Email sent for user {args.user_id}")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
