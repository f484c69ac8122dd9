"""
Per-user submission lock.

Check-in submission, commitment and level-up decisions are read-modify-write
sequences over several rows of one user. Holding this lock for the duration
of the unit of work serializes them within a process; the unique
(user_id, date) constraint covers concurrent writers across processes.

A registry entry lives only while some thread holds or waits on it.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


_registry_lock = threading.Lock()
_user_locks: dict[str, _Entry] = {}


def _acquire_entry(key: str) -> _Entry:
    with _registry_lock:
        entry = _user_locks.get(key)
        if entry is None:
            entry = _Entry()
            _user_locks[key] = entry
        entry.holders += 1
        return entry


def _release_entry(key: str, entry: _Entry) -> None:
    with _registry_lock:
        entry.holders -= 1
        if entry.holders == 0:
            del _user_locks[key]


@contextmanager
def user_lock(email: str) -> Iterator[None]:
    key = email.strip().lower()
    entry = _acquire_entry(key)
    try:
        with entry.lock:
            yield
    finally:
        _release_entry(key, entry)
