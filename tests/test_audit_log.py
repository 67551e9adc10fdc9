"""Tests for the registry audit trail."""

import shutil
import tempfile
from pathlib import Path

import pytest

from registrar.registry.core import Registry
from registrar.registry.errors import InvalidInput, Unauthorized
from registrar.security.audit_log import AuditLogger
from registrar.storage.memory import MemoryStorage

MODERATOR = "0xmoderator"


def test_log_and_filter_events():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLogger(Path(tmpdir))
        audit.log_event("0xa", "register_app", "app", "0x01")
        audit.log_event("0xb", "register_app", "app", "0x02", success=False)
        audit.log_event("0xa", "register_version", "version", "0x03", {"index": 0})

        assert len(audit.get_events()) == 3
        assert len(audit.get_events(actor="0xa")) == 2
        assert len(audit.get_events(resource_type="version")) == 1
        assert [e.actor for e in audit.get_events(success=False)] == ["0xb"]
        assert audit.get_events_for_resource("0x03")[0].details == {"index": 0}
        assert len(audit.get_events(limit=1)) == 1


def test_malformed_lines_are_skipped():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLogger(Path(tmpdir))
        audit.log_event("0xa", "register_app", "app", "0x01")
        (Path(tmpdir) / "2000-01-01.jsonl").write_text("garbage\n")
        assert len(audit.get_events()) == 1


def test_registry_records_mutations():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLogger(Path(tmpdir))
        reg = Registry(MemoryStorage(), MODERATOR, audit=audit)
        app_keys = reg.register_app("prvd", "...", caller=MODERATOR)
        reg.register_version("prvd", "0.0.1", "Pre-alpha", caller=MODERATOR)

        with pytest.raises(Unauthorized):
            reg.register_app("evil", "...", caller="0xstranger")
        # Rolled-back operations leave no success entry
        with pytest.raises(InvalidInput):
            reg.register_app("prvd", "again", caller=MODERATOR)

        actions = sorted(e.action for e in audit.get_events(success=True))
        assert actions == ["register_app", "register_version"]
        denied = audit.get_events(success=False)
        assert len(denied) == 1
        assert denied[0].actor == "0xstranger"
        assert audit.get_events_for_resource(app_keys.namespace_key)[0].details == {"name": "prvd"}


def test_committed_mutation_survives_audit_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit_dir = Path(tmpdir) / "audit"
        reg = Registry(MemoryStorage(), MODERATOR, audit=AuditLogger(audit_dir))
        shutil.rmtree(audit_dir)

        keys = reg.register_app("prvd", "...", caller=MODERATOR)
        assert reg.get_app_info("prvd").name == "prvd"
        assert keys.description_key and reg.get_app_info("prvd").description_length == 3
        reg.register_version("prvd", "0.0.1", "Pre-alpha", caller=MODERATOR)
        assert reg.get_ver_info("prvd", "0.0.1").index == 0


def test_denial_survives_audit_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit_dir = Path(tmpdir) / "audit"
        reg = Registry(MemoryStorage(), MODERATOR, audit=AuditLogger(audit_dir))
        shutil.rmtree(audit_dir)

        with pytest.raises(Unauthorized):
            reg.register_app("prvd", "...", caller="0xstranger")
        assert reg.get_app_info("prvd").name == ""
