"""
Progression ledger: owns loading, saving and exchanging progress snapshots
"""

import json
import logging
from collections.abc import Callable
from dataclasses import replace

from .clock import Clock
from .config import SUPPORTED_LANGUAGES, SUPPORTED_LEVELS
from .core.storage.kv_store import KeyValueStore
from .daily_cycle import current_daily_set, remaining_today
from .exceptions import ImportRejected, StorageCorrupt
from .models import ProgressSettings, ProgressSnapshot, expected_score

logger = logging.getLogger(__name__)

SLOT_PREFIX = "progress:"

BadgeListener = Callable[[int], None]


def slot_key(learner_id: int | str) -> str:
    """Storage key of a learner's progress slot"""
    return f"{SLOT_PREFIX}{learner_id}"


def encode_snapshot(snapshot: ProgressSnapshot, indent: int | None = None) -> str:
    return json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=indent)


def decode_snapshot(
    text: str, default_settings: ProgressSettings | None = None
) -> ProgressSnapshot:
    """Parse a stored snapshot, raising StorageCorrupt on any failure"""
    try:
        data = json.loads(text)
        return ProgressSnapshot.from_dict(data, default_settings)
    except (ValueError, TypeError, KeyError) as e:
        raise StorageCorrupt(f"Stored progress cannot be decoded: {e}") from e


class ProgressLedger:
    """Reads and writes one learner's progress snapshot"""

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        clock: Clock,
        default_settings: ProgressSettings | None = None,
        badge_listener: BadgeListener | None = None,
    ):
        self.store = store
        self.key = key
        self.clock = clock
        self.default_settings = default_settings or ProgressSettings()
        self.badge_listener = badge_listener

    def initial_snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(settings=self.default_settings)

    def load(self) -> ProgressSnapshot:
        """
        Load the stored snapshot

        A missing or undecodable slot yields the initial snapshot. A daily
        set from another date is dropped and the score is reconciled
        against history.
        """
        raw = self.store.get(self.key)
        if raw is None:
            logger.info(f"No stored progress for '{self.key}', starting fresh")
            return self.initial_snapshot()

        try:
            snapshot = decode_snapshot(raw, self.default_settings)
        except StorageCorrupt as e:
            logger.warning(f"{e}; falling back to an empty snapshot")
            return self.initial_snapshot()

        return self._normalize(snapshot)

    def _normalize(self, snapshot: ProgressSnapshot) -> ProgressSnapshot:
        if snapshot.daily_state and current_daily_set(snapshot, self.clock.today()) is None:
            logger.info(f"Discarding daily set from {snapshot.daily_state.date}")
            snapshot = replace(snapshot, daily_state=None)

        expected = expected_score(snapshot.history)
        if snapshot.score != expected:
            logger.warning(
                f"Score mismatch for '{self.key}': stored={snapshot.score}, "
                f"recomputed={expected}; using recomputed value"
            )
            snapshot = replace(snapshot, score=expected)

        return snapshot

    def save(self, snapshot: ProgressSnapshot) -> int:
        """Overwrite the stored snapshot and return the remaining-today count"""
        self.store.set(self.key, encode_snapshot(snapshot))
        remaining = self.remaining_today(snapshot)
        if self.badge_listener:
            self.badge_listener(remaining)
        return remaining

    def remaining_today(self, snapshot: ProgressSnapshot) -> int:
        return remaining_today(snapshot, self.clock.today())

    def reset(self) -> None:
        """Clear the stored snapshot entirely"""
        self.store.delete(self.key)
        logger.info(f"Progress reset for '{self.key}'")
        if self.badge_listener:
            self.badge_listener(self.remaining_today(self.initial_snapshot()))

    def export_document(self, snapshot: ProgressSnapshot) -> str:
        """Serialize a snapshot as a pretty-printed interchange document"""
        return encode_snapshot(snapshot, indent=2)

    def import_document(self, text: str) -> ProgressSnapshot:
        """
        Replace stored progress with an imported document

        Raises:
            ImportRejected: the document is not JSON, has no history list
                or cannot be decoded; stored progress is left untouched
        """
        try:
            data = json.loads(text)
        except (ValueError, TypeError) as e:
            logger.warning(f"Import rejected: not valid JSON ({e})")
            raise ImportRejected("Document is not valid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("history"), list):
            logger.warning("Import rejected: document has no history list")
            raise ImportRejected("Document has no history list")

        try:
            snapshot = ProgressSnapshot.from_dict(data, self.default_settings)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Import rejected: {e}")
            raise ImportRejected(f"Document cannot be decoded: {e}") from e

        snapshot = self._normalize(snapshot)
        self.save(snapshot)
        logger.info(f"Imported {len(snapshot.history)} words into '{self.key}'")
        return snapshot

    def update_settings(
        self,
        snapshot: ProgressSnapshot,
        target_language: str | None = None,
        level: str | None = None,
    ) -> ProgressSnapshot:
        """Return a snapshot with changed language and/or level"""
        if target_language is not None and target_language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported target language: {target_language}")
        if level is not None and level not in SUPPORTED_LEVELS:
            raise ValueError(f"Unsupported level: {level}")

        settings = replace(
            snapshot.settings,
            target_language=target_language or snapshot.settings.target_language,
            level=level or snapshot.settings.level,
        )
        return replace(snapshot, settings=settings)
