"""Tests for the sync reconciler against an in-memory directory."""
import re

import pytest

from authbridge.core.directory import AccountDirectory
from authbridge.core.exceptions import AccountCreationError
from authbridge.core.models import ExternalIdentity, SyncCandidate
from authbridge.core.reconciler import SyncReconciler
from conftest import add_local_user


@pytest.fixture()
def directory(engine, tables):
    return AccountDirectory(engine, tables)


@pytest.fixture()
def reconciler(directory):
    return SyncReconciler(directory, default_role="subscriber")


def test_new_identity_creates_linked_account(reconciler, directory):
    account = reconciler.reconcile(SyncCandidate(id="ba_123", email="jane@example.com", name="Jane Doe"))

    assert account.login == "Jane Doe"
    assert account.email == "jane@example.com"
    assert account.display_name == "Jane Doe"
    assert account.role == "subscriber"
    assert account.link_attribute == "ba_123"
    assert directory.get_link_attribute(account.id) == "ba_123"

    stored = directory.get_account(account.id)
    assert stored.login == "Jane Doe"
    assert stored.role == "subscriber"


def test_credential_is_stored_hashed(reconciler, engine, tables):
    from sqlalchemy import select

    account = reconciler.reconcile(SyncCandidate(id="ba_1", email="a@example.com", name="A"))
    with engine.connect() as conn:
        stored = conn.execute(select(tables.users.c.user_pass).where(tables.users.c.ID == account.id)).scalar_one()
    assert stored
    assert len(stored) > 24
    assert ":" in stored  # werkzeug "method:salt$hash" format


def test_existing_unlinked_account_is_linked(reconciler, directory):
    user_id = add_local_user(directory, "bob", "bob@example.com")

    account = reconciler.reconcile(SyncCandidate(id="ba_bob", email="bob@example.com", name="Robert"))

    assert account.id == user_id
    assert account.login == "bob"
    assert account.link_attribute == "ba_bob"
    assert directory.get_link_attribute(user_id) == "ba_bob"


def test_email_match_is_case_insensitive(reconciler, directory):
    user_id = add_local_user(directory, "carol", "Carol@Example.com")
    account = reconciler.reconcile(SyncCandidate(id="ba_c", email="carol@example.com"))
    assert account.id == user_id


def test_reconcile_is_idempotent(reconciler, directory):
    candidate = SyncCandidate(id="ba_9", email="same@example.com", name="Same")

    first = reconciler.reconcile(candidate)
    second = reconciler.reconcile(candidate)

    assert first.id == second.id
    assert first.login == second.login
    assert directory.find_by_login("Same").id == first.id
    assert len(directory.list_linked_accounts()) == 1


def test_different_existing_link_is_left_unchanged(reconciler, directory):
    user_id = add_local_user(directory, "dave", "dave@example.com", link="ba_original")

    account = reconciler.reconcile(SyncCandidate(id="ba_other", email="dave@example.com"))

    assert account.id == user_id
    assert account.link_attribute == "ba_original"
    assert directory.get_link_attribute(user_id) == "ba_original"


def test_taken_login_gets_random_suffix(reconciler, directory):
    add_local_user(directory, "Admin", "root@example.com")

    account = reconciler.reconcile(SyncCandidate(id="ba_x", email="admin2@example.com", name="Admin"))

    assert re.fullmatch(r"Admin_[A-Za-z0-9]{6}", account.login)
    assert directory.find_by_login(account.login).id == account.id


def test_login_falls_back_to_email_local_part(reconciler):
    account = reconciler.reconcile(SyncCandidate(id="ba_e", email="eve.smith@example.com", name=""))
    assert account.login == "eve.smith"
    assert account.display_name == ""


def test_unusable_name_and_local_part_fall_back_to_user(reconciler):
    account = reconciler.reconcile(SyncCandidate(id="ba_u", email="§§@example.com", name="<b></b>"))
    assert account.login == "user"


def test_long_name_is_truncated_to_sixty_characters(reconciler, directory):
    name = "a" * 80
    account = reconciler.reconcile(SyncCandidate(id="ba_long", email="long@example.com", name=name))
    assert account.login == "a" * 60

    suffixed = reconciler.reconcile(SyncCandidate(id="ba_long2", email="long2@example.com", name=name))
    assert len(suffixed.login) == 60
    assert suffixed.login.startswith("a" * 53 + "_")


def test_name_markup_is_stripped(reconciler):
    account = reconciler.reconcile(
        SyncCandidate(id="ba_m", email="m@example.com", name="<script>x</script>José  Núñez")
    )
    assert account.login == "xJose Nunez"
    assert account.display_name == "xJosé Núñez"


def test_insert_failure_propagates_and_leaves_no_link(directory, monkeypatch):
    reconciler = SyncReconciler(directory)

    def boom(**kwargs):
        raise AccountCreationError("Could not create user.")

    monkeypatch.setattr(directory, "create_account", boom)

    with pytest.raises(AccountCreationError) as excinfo:
        reconciler.reconcile(SyncCandidate(id="ba_f", email="f@example.com", name="F"))

    assert excinfo.value.status == 500
    assert directory.list_linked_accounts() == []


def test_sync_all_reports_per_identity(reconciler, directory):
    add_local_user(directory, "gina", "gina@example.com")
    identities = [
        ExternalIdentity(id="ba_g", email="gina@example.com", name="Gina"),
        ExternalIdentity(id="ba_h", email="harry@example.com", name="Harry"),
        ExternalIdentity(id="ba_bad", email="not-an-email", name="Bad"),
    ]

    report = reconciler.sync_all(identities)

    assert report.total == 3
    assert report.succeeded == 2
    assert report.failures == {"ba_bad": "rest_invalid_param"}
    assert {a.link_attribute for a in directory.list_linked_accounts()} == {"ba_g", "ba_h"}


def test_sync_all_continues_after_store_rejection(directory, monkeypatch):
    reconciler = SyncReconciler(directory)
    original = directory.create_account

    def flaky(**kwargs):
        if kwargs["email"] == "first@example.com":
            raise AccountCreationError("Could not create user.")
        return original(**kwargs)

    monkeypatch.setattr(directory, "create_account", flaky)

    report = reconciler.sync_all(
        [
            ExternalIdentity(id="ba_1", email="first@example.com"),
            ExternalIdentity(id="ba_2", email="second@example.com"),
        ]
    )

    assert report.failures == {"ba_1": "account_creation_failed"}
    assert report.succeeded == 1
