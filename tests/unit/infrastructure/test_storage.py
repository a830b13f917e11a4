"""
Tests for atomic file storage helpers.
"""

import threading

import pytest

from strata.infrastructure.exceptions import StorageError
from strata.infrastructure.storage import (
    PathLockRegistry, atomic_write_bytes, atomic_write_text, copy_file
)


def test_atomic_write_creates_parents(tmp_path):
    target = tmp_path / "a" / "b" / "file.json"
    atomic_write_text(target, '{"x": 1}\n')
    assert target.read_text(encoding="utf-8") == '{"x": 1}\n'


def test_atomic_write_replaces_and_leaves_no_temp_files(tmp_path):
    target = tmp_path / "file.bin"
    atomic_write_bytes(target, b"first")
    atomic_write_bytes(target, b"second")
    assert target.read_bytes() == b"second"
    assert [p.name for p in tmp_path.iterdir()] == ["file.bin"]


def test_atomic_write_into_file_parent_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(StorageError) as ex:
        atomic_write_bytes(blocker / "child.json", b"{}")
    assert ex.value.error_code == "STORAGE_ERROR"
    assert blocker.read_text() == "not a directory"


def test_copy_file_overwrites(tmp_path):
    source = tmp_path / "source.json"
    destination = tmp_path / "backups" / "copy.json"
    source.write_bytes(b"one")
    copy_file(source, destination)
    source.write_bytes(b"two")
    copy_file(source, destination)
    assert destination.read_bytes() == b"two"


def test_copy_file_failure_leaves_no_partial_destination(tmp_path, monkeypatch):
    source = tmp_path / "source.json"
    source.write_bytes(b"payload")
    backups = tmp_path / "backups"

    def failing_replace(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("strata.infrastructure.storage.os.replace", failing_replace)
    with pytest.raises(StorageError):
        copy_file(source, backups / "copy.json")

    assert list(backups.iterdir()) == []


def test_copy_file_missing_source_raises_storage_error(tmp_path):
    with pytest.raises(StorageError) as ex:
        copy_file(tmp_path / "missing.json", tmp_path / "copy.json")
    assert ex.value.context["operation"] == "copy"
    assert not (tmp_path / "copy.json").exists()


def test_path_lock_registry_shares_lock_per_resolved_path(tmp_path):
    registry = PathLockRegistry()
    a = registry.lock_for(tmp_path / "x.json")
    b = registry.lock_for(tmp_path / "sub" / ".." / "x.json")
    c = registry.lock_for(tmp_path / "y.json")
    assert a is b
    assert a is not c


def test_path_lock_is_reentrant(tmp_path):
    lock = PathLockRegistry().lock_for(tmp_path / "x.json")
    with lock:
        assert lock.acquire(blocking=False)
        lock.release()

    acquired = []
    worker = threading.Thread(target=lambda: acquired.append(lock.acquire(timeout=1)))
    worker.start()
    worker.join()
    assert acquired == [True]
