"""
Tests for per-user locks and conversation state
"""

from datetime import datetime, timedelta

import pytest

from daily_polyglot.core.locks.user_lock_manager import UserLockManager
from daily_polyglot.core.state.user_state_manager import UserState, UserStateManager


class TestUserLockManager:
    """Test UserLockManager"""

    def test_acquire_and_release(self):
        manager = UserLockManager()

        assert manager.acquire_lock(1, "reveal") is True
        assert manager.is_locked(1)
        assert manager.get_lock_info(1).operation == "reveal"
        assert manager.acquire_lock(1, "review_answer") is False

        assert manager.release_lock(1) is True
        assert manager.release_lock(1) is False
        assert not manager.is_locked(1)

    def test_users_are_independent(self):
        manager = UserLockManager()

        assert manager.acquire_lock(1, "reveal")
        assert manager.acquire_lock(2, "reveal")

    def test_expired_lock_is_removed(self):
        manager = UserLockManager(lock_timeout_minutes=5)
        manager.acquire_lock(1, "reveal")
        manager._locks[1].locked_at = datetime.now() - timedelta(minutes=6)

        assert not manager.is_locked(1)
        assert manager.acquire_lock(1, "reveal")

    @pytest.mark.asyncio
    async def test_hold_releases_on_exit(self):
        manager = UserLockManager()

        async with manager.hold(1, "reveal") as acquired:
            assert acquired
            async with manager.hold(1, "reveal") as nested:
                assert not nested
            assert manager.is_locked(1)

        assert not manager.is_locked(1)

    @pytest.mark.asyncio
    async def test_hold_releases_on_error(self):
        manager = UserLockManager()

        with pytest.raises(RuntimeError):
            async with manager.hold(1, "reveal"):
                raise RuntimeError("boom")

        assert not manager.is_locked(1)

    @pytest.mark.asyncio
    async def test_hold_keeps_lock_retaken_after_expiry(self):
        manager = UserLockManager(lock_timeout_minutes=5)

        async with manager.hold(1, "reveal") as acquired:
            assert acquired
            manager._locks[1].locked_at = datetime.now() - timedelta(minutes=6)
            assert manager.acquire_lock(1, "reset")

        assert manager.is_locked(1)
        assert manager.get_lock_info(1).operation == "reset"

    def test_release_ignores_other_lock_info(self):
        manager = UserLockManager()
        manager.acquire_lock(1, "reveal")
        stale = manager.get_lock_info(1)
        manager.release_lock(1)
        manager.acquire_lock(1, "settings")

        assert manager.release_lock(1, stale) is False
        assert manager.is_locked(1)
        assert manager.release_lock(1, manager.get_lock_info(1)) is True


class TestUserStateManager:
    """Test UserStateManager"""

    def test_default_state_is_idle(self):
        assert UserStateManager().get_state(1) == UserState.IDLE

    def test_waiting_for_import(self):
        manager = UserStateManager()
        manager.set_state(1, UserState.WAITING_FOR_IMPORT_FILE)

        assert manager.is_waiting_for_import(1)
        assert not manager.is_waiting_for_import(2)

        manager.clear_state(1)
        assert not manager.is_waiting_for_import(1)

    def test_state_expires(self):
        manager = UserStateManager(state_timeout_minutes=10)
        manager.set_state(1, UserState.WAITING_FOR_IMPORT_FILE)
        manager.user_states[1].timestamp = datetime.now() - timedelta(minutes=11)

        assert manager.get_state(1) == UserState.IDLE
        assert 1 not in manager.user_states
