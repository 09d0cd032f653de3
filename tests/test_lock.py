"""Tests for CommandLock with injected lock path."""

from datetime import UTC
from datetime import datetime
from datetime import timedelta

import pytest
import yaml
from command_bundles import CommandLock
from command_bundles import LockFileError
from command_bundles.lock import dump_lock
from command_bundles.lock import load_lock

SOURCE = "https://github.com/org/hello.git"
T0 = datetime(2025, 10, 26, 12, 0, 0, tzinfo=UTC)


def _record(lock, name="hello", version="1.0.0", source=SOURCE, ref="v1.0.0", commit="abc1234", now=T0):
    return lock.record_install(name, version, source, f"{source}@{ref}", commit, now=now)


def test_lock_with_injected_path(tmp_path):
    """Test lock uses injected path (not hardcoded)."""
    lock_path = tmp_path / "custom-lock.yaml"

    lock = CommandLock(lock_path=lock_path)

    assert lock.lock_path == lock_path
    assert not lock_path.exists()  # Not created until first save


def test_record_and_get_entry(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")

    entry = _record(lock)

    assert lock.get_entry("hello") == entry
    assert entry.source == SOURCE
    assert entry.resolved == f"{SOURCE}@v1.0.0"
    assert entry.installed_at == entry.updated_at == T0
    assert entry.repo_path == "org/hello"


def test_persistence(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    _record(CommandLock(lock_path))

    reloaded = CommandLock(lock_path).get_entry("hello")

    assert reloaded is not None
    assert reloaded.commit == "abc1234"
    assert reloaded.installed_at == T0


def test_file_format(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    _record(CommandLock(lock_path))

    data = yaml.safe_load(lock_path.read_text())

    assert data["version"] == "1.0"
    assert data["lockfileVersion"] == 1
    assert data["commands"]["hello"]["resolved"] == f"{SOURCE}@v1.0.0"


def test_empty_lock_writes_empty_mapping(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    lock = CommandLock(lock_path)
    _record(lock)

    lock.remove_entry("hello")

    data = yaml.safe_load(lock_path.read_text())
    assert data["commands"] == {}
    assert "commands: {}" in dump_lock({})


def test_update_keeps_installed_at(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")
    _record(lock)

    later = T0 + timedelta(days=1)
    entry = _record(lock, version="1.1.0", ref="v1.1.0", commit="def5678", now=later)

    assert entry.installed_at == T0
    assert entry.updated_at == later
    assert entry.version == "1.1.0"


def test_rename_moves_entry_and_keeps_installed_at(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")
    _record(lock, name="hello")

    later = T0 + timedelta(hours=3)
    entry = _record(lock, name="hello-world", now=later)

    assert not lock.is_installed("hello")
    assert lock.get_entry("hello-world") == entry
    assert entry.installed_at == T0
    assert entry.updated_at == later
    assert len(lock.list_entries()) == 1


def test_matching_is_by_repository_not_url_form(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")
    _record(lock, source="https://github.com/org/hello.git")

    entry = _record(lock, source="git@github.com:org/hello.git", now=T0 + timedelta(minutes=1))

    assert entry.installed_at == T0
    assert lock.find_by_repository("org/hello") == entry


def test_remove_missing_entry_is_noop(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    lock = CommandLock(lock_path)

    lock.remove_entry("nope")

    assert not lock_path.exists()


def test_list_entries_sorting(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")
    _record(lock, name="zeta", source="https://github.com/org/zeta.git", now=T0)
    _record(lock, name="alpha", source="https://github.com/org/alpha.git", now=T0 + timedelta(hours=1))

    assert [e.name for e in lock.list_entries()] == ["alpha", "zeta"]
    assert [e.name for e in lock.list_entries(sort_by="installed")] == ["alpha", "zeta"]

    _record(lock, name="zeta", source="https://github.com/org/zeta.git", now=T0 + timedelta(hours=2))
    assert [e.name for e in lock.list_entries(sort_by="updated")] == ["zeta", "alpha"]


def test_corrupted_lock_raises(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    lock_path.write_text("commands: [not, a, mapping]\n")

    with pytest.raises(LockFileError):
        CommandLock(lock_path)


def test_invalid_yaml_raises():
    with pytest.raises(LockFileError, match="Failed to parse"):
        load_lock("commands: {hello: [", source="broken.yaml")


def test_entry_missing_fields_raises():
    with pytest.raises(LockFileError, match="Invalid lock entry 'hello'"):
        load_lock("version: '1.0'\ncommands:\n  hello:\n    name: hello\n")


def test_load_accepts_unquoted_timestamps():
    text = (
        "version: '1.0'\n"
        "lockfileVersion: 1\n"
        "commands:\n"
        "  hello:\n"
        "    name: hello\n"
        "    version: 1.0.0\n"
        f"    source: {SOURCE}\n"
        f"    resolved: {SOURCE}@v1.0.0\n"
        "    commit: abc1234\n"
        "    installed_at: 2025-10-26T12:00:00+00:00\n"
        "    updated_at: 2025-10-26T12:00:00Z\n"
    )

    entry = load_lock(text)["hello"]

    assert entry.installed_at == T0
    assert entry.updated_at == T0


def test_empty_file_loads_as_empty(tmp_path):
    lock_path = tmp_path / "commands-lock.yaml"
    lock_path.write_text("")

    assert CommandLock(lock_path).list_entries() == []


def test_dump_load_preserves_entries(tmp_path):
    lock = CommandLock(tmp_path / "commands-lock.yaml")
    for index, name in enumerate(["alpha", "beta", "gamma"]):
        _record(lock, name=name, source=f"https://github.com/org/{name}.git", now=T0 + timedelta(minutes=index))
    entries = {entry.name: entry for entry in lock.list_entries()}

    assert load_lock(dump_lock(entries)) == entries
