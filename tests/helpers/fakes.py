from __future__ import annotations

import threading
from typing import Any, List, Mapping

from identivault.db import InMemoryAccountStorage, InMemorySessionProvider, StorageError


class FakeClock:
    def __init__(self, start: int = 1_700_000_000):
        self._t = int(start)

    def __call__(self) -> int:
        return self._t

    def time(self) -> int:
        return self._t

    def advance(self, seconds: int) -> None:
        self._t += int(seconds)


class RecordingAccountStorage(InMemoryAccountStorage):
    """In-memory storage that records mutating calls and can be told to fail."""

    __slots__ = ("calls", "fail_reads", "fail_writes")

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []
        self.fail_reads = False
        self.fail_writes = False

    def _read(self) -> None:
        if self.fail_reads:
            raise StorageError("storage offline")

    def _write(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_writes:
            raise StorageError("storage offline")

    def get_user_by_name(self, name: str):
        self._read()
        return super().get_user_by_name(name)

    def get_user(self, account_id: str):
        self._read()
        return super().get_user(account_id)

    def list_users(self, limit: int = 0, offset: int = 0):
        self._read()
        return super().list_users(limit, offset)

    def save_user(self, account) -> None:
        self._write("save_user")
        super().save_user(account)

    def update_user(self, account_id: str, changes: Mapping[str, Any]) -> None:
        self._write("update_user")
        super().update_user(account_id, changes)

    def delete_user(self, account_id: str) -> None:
        self._write("delete_user")
        super().delete_user(account_id)


class FlakySessionProvider(InMemorySessionProvider):
    """Session provider whose gc() raises until `fail_gc` is cleared."""

    __slots__ = ("gc_calls", "fail_gc", "fail_all")

    def __init__(self, clock=None) -> None:
        if clock is None:
            super().__init__()
        else:
            super().__init__(clock=clock)
        self.gc_calls = 0
        self.fail_gc = True
        self.fail_all = False

    def get(self, session_id: str):
        if self.fail_all:
            raise StorageError("provider offline")
        return super().get(session_id)

    def gc(self) -> None:
        self.gc_calls += 1
        if self.fail_gc:
            raise StorageError("provider offline")
        super().gc()


class BlockingSessionProvider(InMemorySessionProvider):
    """Session provider whose gc() blocks until released."""

    __slots__ = ("entered", "release", "gc_calls")

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.gc_calls = 0

    def gc(self) -> None:
        self.gc_calls += 1
        self.entered.set()
        self.release.wait(10)
        super().gc()


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    import time

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
