"""
User conversation state for multi-step bot interactions
"""

import logging
from datetime import datetime, timedelta
from enum import Enum

logger = logging.getLogger(__name__)


class UserState(Enum):
    """Available user states"""
    IDLE = "idle"
    WAITING_FOR_IMPORT_FILE = "waiting_for_import_file"


class UserStateInfo:
    """Information about user state"""

    def __init__(self, state: UserState, timestamp: datetime | None = None):
        self.state = state
        self.timestamp = timestamp or datetime.now()


class UserStateManager:
    """Tracks which users the bot is waiting on, with expiry"""

    def __init__(self, state_timeout_minutes: int = 10):
        self.user_states: dict[int, UserStateInfo] = {}
        self.state_timeout_minutes = state_timeout_minutes

    def set_state(self, telegram_id: int, state: UserState):
        """Set user state"""
        self.user_states[telegram_id] = UserStateInfo(state)
        logger.debug(f"Set state for user {telegram_id}: {state.value}")

    def get_state(self, telegram_id: int) -> UserState:
        """Get user state, expiring stale ones"""
        state_info = self.user_states.get(telegram_id)
        if state_info is None:
            return UserState.IDLE

        if self._is_state_expired(state_info):
            self.clear_state(telegram_id)
            return UserState.IDLE

        return state_info.state

    def clear_state(self, telegram_id: int):
        """Clear user state"""
        state_info = self.user_states.pop(telegram_id, None)
        if state_info:
            logger.debug(f"Cleared state for user {telegram_id} (was: {state_info.state.value})")

    def is_waiting_for_import(self, telegram_id: int) -> bool:
        return self.get_state(telegram_id) == UserState.WAITING_FOR_IMPORT_FILE

    def _is_state_expired(self, state_info: UserStateInfo) -> bool:
        if state_info.state == UserState.IDLE:
            return False

        timeout = timedelta(minutes=self.state_timeout_minutes)
        return datetime.now() - state_info.timestamp > timeout
