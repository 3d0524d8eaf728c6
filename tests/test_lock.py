# tests/test_lock.py
"""
Tests des verrous nommés (RunLock).
"""

import errno
import sys
import threading
import types

import pytest

from munin_master.core import lock as lock_module
from munin_master.core.errors import LockError
from munin_master.core.lock import RunLock


@pytest.fixture
def lock_path(tmp_path):
    return str(tmp_path / "munin-update.lock")


def test_second_acquire_blocks_until_release(lock_path):
    first = RunLock(lock_path)
    second = RunLock(lock_path)
    acquired = threading.Event()

    def contender():
        with second:
            acquired.set()

    first.acquire()
    thread = threading.Thread(target=contender)
    thread.start()
    try:
        assert not acquired.wait(timeout=0.3)
    finally:
        first.release()

    assert acquired.wait(timeout=5)
    thread.join(timeout=5)
    assert not second.locked


def test_context_manager_releases_on_exception(lock_path):
    lock = RunLock(lock_path)

    with pytest.raises(RuntimeError):
        with lock:
            assert lock.locked
            raise RuntimeError("échec du cycle")

    assert not lock.locked
    with RunLock(lock_path) as again:
        assert again.locked


def test_lock_file_contains_holder_pid(lock_path):
    import os

    with RunLock(lock_path):
        with open(lock_path, encoding="utf-8") as f:
            assert f.read().strip() == str(os.getpid())


def test_acquire_twice_on_same_instance_is_an_error(lock_path):
    lock = RunLock(lock_path)
    with lock:
        with pytest.raises(LockError):
            lock.acquire()


def test_unopenable_lock_path_raises_lock_error(tmp_path):
    with pytest.raises(LockError):
        RunLock(str(tmp_path / "missing" / "x.lock")).acquire()


def test_release_without_acquire_is_harmless(lock_path):
    RunLock(lock_path).release()


def test_windows_lock_retries_until_acquired(tmp_path, monkeypatch):
    calls = []

    def locking(fd, mode, nbytes):
        calls.append(mode)
        if len(calls) < 3:
            raise OSError(errno.EDEADLOCK, "Resource deadlock avoided")

    monkeypatch.setitem(sys.modules, "msvcrt", types.SimpleNamespace(locking=locking, LK_LOCK=1))

    with open(tmp_path / "munin-update.lock", "a+") as handle:
        lock_module._lock_msvcrt(handle)

    assert calls == [1, 1, 1]


def test_windows_lock_propagates_other_errors(tmp_path, monkeypatch):
    def locking(fd, mode, nbytes):
        raise OSError(errno.EBADF, "Bad file descriptor")

    monkeypatch.setitem(sys.modules, "msvcrt", types.SimpleNamespace(locking=locking, LK_LOCK=1))

    with open(tmp_path / "munin-update.lock", "a+") as handle:
        with pytest.raises(OSError):
            lock_module._lock_msvcrt(handle)
