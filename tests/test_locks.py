"""
Tests for the per-user lock registry.
"""
import threading

import pytest

from momentum_engine.core import locks


class TestUserLock:
    def test_registry_drops_idle_locks(self):
        with locks.user_lock("Idle@Example.com"):
            assert "idle@example.com" in locks._user_locks
        assert "idle@example.com" not in locks._user_locks

    def test_entry_released_when_body_raises(self):
        with pytest.raises(RuntimeError):
            with locks.user_lock("boom@example.com"):
                raise RuntimeError("boom")
        assert "boom@example.com" not in locks._user_locks

    def test_same_user_is_serialized(self):
        key = "serial@example.com"
        order = []
        entered = threading.Event()
        release = threading.Event()

        def first():
            with locks.user_lock(key):
                order.append("first")
                entered.set()
                release.wait(timeout=5)

        def second():
            with locks.user_lock(key):
                order.append("second")

        t1 = threading.Thread(target=first)
        t1.start()
        assert entered.wait(timeout=5)
        t2 = threading.Thread(target=second)
        t2.start()
        t2.join(timeout=0.2)

        assert order == ["first"]
        assert locks._user_locks[key].holders == 2

        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)
        assert order == ["first", "second"]
        assert key not in locks._user_locks

    def test_different_users_do_not_block(self):
        with locks.user_lock("one@example.com"):
            with locks.user_lock("two@example.com"):
                assert {"one@example.com", "two@example.com"} <= set(locks._user_locks)
        assert "one@example.com" not in locks._user_locks
