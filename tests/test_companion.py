"""
Tests for the per-learner companion and its registry
"""

import random
import sqlite3
from unittest.mock import AsyncMock, patch

import pytest

from conftest import StubWordSupply, make_word
from daily_polyglot.core.session.companion_registry import CompanionRegistry
from daily_polyglot.daily_cycle import DailyState
from daily_polyglot.exceptions import DailyQuotaComplete, ImportRejected, ServiceError
from daily_polyglot.ledger import slot_key
from daily_polyglot.models import REVEAL_POINTS, REVIEW_POINTS, ProgressSettings, ProgressSnapshot


@pytest.fixture
def supply():
    return StubWordSupply()


@pytest.fixture
def registry(temp_store, supply, clock):
    return CompanionRegistry(temp_store, supply, clock, rng=random.Random(3))


class TestLearningCompanion:
    """Test companion flows against real storage"""

    @pytest.mark.asyncio
    async def test_reveal_persists(self, registry, temp_store):
        companion = registry.get(321)

        result = await companion.reveal()

        assert result.remaining == 2
        assert companion.remaining_today() == 2
        assert temp_store.get(slot_key(321)) is not None
        assert companion.ledger.load() == companion.snapshot()

    @pytest.mark.asyncio
    async def test_full_day_flow(self, registry):
        companion = registry.get(321)

        assert companion.daily_state() == DailyState.EMPTY
        for _ in range(3):
            await companion.reveal()

        assert companion.daily_state() == DailyState.COMPLETE
        assert len(companion.revealed_today()) == 3
        assert companion.snapshot().score == 3 * REVEAL_POINTS

        with pytest.raises(DailyQuotaComplete):
            await companion.reveal()

    @pytest.mark.asyncio
    async def test_service_error_keeps_stored_state(self, temp_store, clock):
        supply = StubWordSupply(error=ServiceError("offline"))
        registry = CompanionRegistry(temp_store, supply, clock)
        companion = registry.get(1)

        with pytest.raises(ServiceError):
            await companion.reveal()

        assert temp_store.get(slot_key(1)) is None
        assert companion.daily_state() == DailyState.EMPTY

    @pytest.mark.asyncio
    async def test_review_flow(self, registry):
        companion = registry.get(321)
        await companion.reveal()

        session = companion.start_review()
        result = companion.select_option(session.correct_index)

        assert result.applied
        assert companion.snapshot().score == REVEAL_POINTS + REVIEW_POINTS
        assert companion.ledger.load().score == REVEAL_POINTS + REVIEW_POINTS

        repeat = companion.select_option(session.correct_index)
        assert not repeat.applied
        assert companion.snapshot().score == REVEAL_POINTS + REVIEW_POINTS

    def test_select_without_session(self, registry):
        assert registry.get(1).select_option(0) is None

    @pytest.mark.asyncio
    async def test_answer_for_replaced_question_is_ignored(self, registry):
        companion = registry.get(321)
        await companion.reveal()
        old_session = companion.start_review()
        new_session = companion.start_review()

        stale = companion.select_option(
            old_session.correct_index, session_id=old_session.session_id
        )

        assert stale is None
        assert companion.review_session == new_session
        assert companion.snapshot().score == REVEAL_POINTS

        result = companion.select_option(
            new_session.correct_index, session_id=new_session.session_id
        )
        assert result.applied
        assert result.session.is_correct

    @pytest.mark.asyncio
    async def test_pronunciation_plays_after_save(self, temp_store, supply, clock):
        speaker = AsyncMock()
        registry = CompanionRegistry(temp_store, supply, clock, speaker_factory=lambda _: speaker)
        companion = registry.get(321)

        result = await companion.reveal()
        await companion.controller.wait_for_pronunciations()

        speaker.assert_awaited_once_with(result.entry.word, "de")
        assert companion.ledger.load() == result.snapshot

    @pytest.mark.asyncio
    async def test_failed_save_plays_no_pronunciation(self, temp_store, supply, clock):
        speaker = AsyncMock()
        registry = CompanionRegistry(temp_store, supply, clock, speaker_factory=lambda _: speaker)
        companion = registry.get(321)

        with patch.object(
            temp_store, "set", side_effect=sqlite3.OperationalError("disk I/O error")
        ):
            with pytest.raises(sqlite3.OperationalError):
                await companion.reveal()
        await companion.controller.wait_for_pronunciations()

        speaker.assert_not_awaited()
        assert companion.snapshot() == ProgressSnapshot()

    def test_history_grouped_newest_first(self, temp_store, clock, supply):
        registry = CompanionRegistry(temp_store, supply, clock)
        companion = registry.get(9)
        snapshot = ProgressSnapshot(
            history=(
                make_word("a", date_learned="2025-07-08"),
                make_word("legacy"),
                make_word("b", date_learned="2025-07-10"),
                make_word("c", date_learned="2025-07-08"),
            ),
            score=4 * REVEAL_POINTS,
        )
        companion.ledger.save(snapshot)

        groups = companion.history_by_date()

        assert [key for key, _ in groups] == ["2025-07-10", "2025-07-08", None]
        assert [w.id for w in groups[1][1]] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_town_tracks_score(self, registry):
        companion = registry.get(321)
        await companion.reveal()

        assert companion.town().level == 1

    def test_update_settings_persists(self, registry):
        companion = registry.get(321)

        companion.update_settings(target_language="en")

        assert companion.ledger.load().settings == ProgressSettings("en", "A1")

    @pytest.mark.asyncio
    async def test_export_import_and_reset(self, registry):
        source = registry.get(1)
        await source.reveal()
        document = source.export_document()

        target = registry.get(2)
        imported = target.import_document(document)

        assert imported.history == source.snapshot().history
        assert target.review_session is None

        with pytest.raises(ImportRejected):
            target.import_document("{}")
        assert target.snapshot() == imported

        assert target.reset() == ProgressSnapshot()
        assert target.ledger.load() == ProgressSnapshot()


class TestCompanionRegistry:
    """Test companion caching and learner discovery"""

    def test_same_companion_per_user(self, registry):
        assert registry.get(1) is registry.get(1)
        assert registry.get(1) is not registry.get(2)

    def test_default_settings_applied(self, temp_store, supply, clock):
        registry = CompanionRegistry(
            temp_store, supply, clock, default_settings=ProgressSettings("es", "B2")
        )

        assert registry.get(1).snapshot().settings == ProgressSettings("es", "B2")

    @pytest.mark.asyncio
    async def test_known_learners(self, registry, temp_store):
        await registry.get(5).reveal()
        await registry.get(7).reveal()
        temp_store.set("progress:not-a-number", "{}")

        assert sorted(registry.known_learners()) == [5, 7]

    def test_speaker_factory_called_per_user(self, temp_store, supply, clock):
        created = []

        def factory(user_id):
            created.append(user_id)

            async def speak(text, language):
                return None

            return speak

        registry = CompanionRegistry(temp_store, supply, clock, speaker_factory=factory)
        registry.get(11)
        registry.get(11)

        assert created == [11]
        assert registry.get(11).controller.speaker is not None
