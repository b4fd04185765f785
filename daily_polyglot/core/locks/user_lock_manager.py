"""User lock manager serializing progress mutations per learner"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


@dataclass
class LockInfo:
    """Information about a user lock"""

    locked_at: datetime
    operation: str


class UserLockManager:
    """
    Lets at most one reveal or review answer run per learner at a time

    Locks expire after a timeout so a hung word-supply call cannot block
    a learner forever.
    """

    def __init__(self, lock_timeout_minutes: int = 5):
        self._locks: dict[int, LockInfo] = {}
        self._lock_timeout = timedelta(minutes=lock_timeout_minutes)

    def is_locked(self, user_id: int) -> bool:
        self._cleanup_expired_locks()
        return user_id in self._locks

    def get_lock_info(self, user_id: int) -> LockInfo | None:
        self._cleanup_expired_locks()
        return self._locks.get(user_id)

    def acquire_lock(self, user_id: int, operation: str) -> bool:
        """
        Try to acquire lock for user

        Args:
            user_id: Telegram user ID
            operation: Name of operation being locked

        Returns:
            True if lock acquired, False if user already locked
        """
        self._cleanup_expired_locks()

        if user_id in self._locks:
            logger.warning(
                f"User {user_id} already locked for operation: {self._locks[user_id].operation}"
            )
            return False

        self._locks[user_id] = LockInfo(locked_at=datetime.now(), operation=operation)
        logger.debug(f"Acquired lock for user {user_id}, operation: {operation}")
        return True

    def release_lock(self, user_id: int, lock_info: LockInfo | None = None) -> bool:
        """
        Release the user's lock

        When ``lock_info`` is given, only that exact lock is released; a lock
        taken by another operation after it expired is left alone.
        """
        if user_id not in self._locks:
            logger.warning(f"Attempted to release non-existent lock for user {user_id}")
            return False
        if lock_info is not None and self._locks[user_id] is not lock_info:
            logger.warning(
                f"Lock for user {user_id} expired and is now held by "
                f"{self._locks[user_id].operation}, not releasing"
            )
            return False

        lock_info = self._locks.pop(user_id)
        logger.debug(f"Released lock for user {user_id}, operation: {lock_info.operation}")
        return True

    @asynccontextmanager
    async def hold(self, user_id: int, operation: str):
        """Context manager yielding whether the lock was acquired"""
        acquired = self.acquire_lock(user_id, operation)
        lock_info = self._locks.get(user_id) if acquired else None
        try:
            yield acquired
        finally:
            if acquired:
                self.release_lock(user_id, lock_info)

    def _cleanup_expired_locks(self):
        """Remove expired locks"""
        current_time = datetime.now()
        expired_users = [
            user_id
            for user_id, lock_info in self._locks.items()
            if current_time - lock_info.locked_at > self._lock_timeout
        ]

        for user_id in expired_users:
            lock_info = self._locks.pop(user_id)
            logger.warning(
                f"Expired lock removed for user {user_id}, operation: {lock_info.operation}"
            )
