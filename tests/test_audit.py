"""Unit tests for sync audit logging."""
import json

from authbridge.core import audit


def test_log_sync_event_creates_file(_isolated_audit_log):
    audit_file = audit.AUDIT_LOG_FILE
    assert not audit_file.exists()

    audit.log_sync_event("sync_created", "ba_1", operator="sync-api", details={"wp_user_id": 1})

    assert audit_file.exists()
    assert audit_file.stat().st_mode & 0o777 == 0o600


def test_log_sync_event_writes_json_lines():
    audit.log_sync_event("sync_linked", "ba_1", details={"wp_user_id": 7})
    audit.log_sync_event("sync_rejected", "ba_2", details={"code": "rest_ba_no_account"}, success=False)

    lines = audit.AUDIT_LOG_FILE.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["event_type"] == "sync_linked"
    assert first["subject"] == "ba_1"
    assert first["operator"] == "system"
    assert first["details"] == {"wp_user_id": 7}
    assert second["success"] is False
    assert first["signature"]


def test_signatures_verify():
    audit.log_sync_event("backfill", "*", operator="cli", details={"total": 3})
    audit.log_sync_event("password_setup", "jane")

    assert audit.verify_audit_log() == (2, 2)


def test_tampered_event_fails_verification():
    audit.log_sync_event("sync_created", "ba_1", details={"wp_user_id": 1})
    event = json.loads(audit.AUDIT_LOG_FILE.read_text(encoding="utf-8"))
    event["details"]["wp_user_id"] = 2
    audit.AUDIT_LOG_FILE.write_text(json.dumps(event) + "\n", encoding="utf-8")

    assert audit.verify_audit_log() == (1, 0)


def test_unsigned_when_no_key(monkeypatch):
    monkeypatch.delenv("AUDIT_LOG_SIGNING_KEY", raising=False)
    audit.log_sync_event("sync_created", "ba_1")

    event = json.loads(audit.AUDIT_LOG_FILE.read_text(encoding="utf-8"))
    assert "signature" not in event
    assert audit.verify_audit_log() == (1, 0)


def test_signing_key_file_takes_priority(monkeypatch, tmp_path):
    key_file = tmp_path / "key"
    key_file.write_text("file-key\n", encoding="utf-8")
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY_FILE", str(key_file))

    assert audit._get_signing_key() == b"file-key"


def test_verify_without_log_file():
    assert audit.verify_audit_log() == (0, 0)


def test_safe_log_swallows_os_errors(monkeypatch, capsys):
    def fail(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr(audit, "log_sync_event", fail)

    assert audit.safe_log_sync_event("sync_created", "ba_1") is False
    assert "Failed to log sync_created" in capsys.readouterr().err
