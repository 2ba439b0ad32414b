"""Tests for round sequencing in the duel controller."""

import asyncio

import pytest

from conftest import FixedOffsetRandom, StubSource, make_challenge, make_choice_challenge
from duel_app.constants.duel_constants import MAX_HEALTH
from duel_app.core.duel_controller import DuelController
from duel_app.core.errors import NoActiveMatchError
from duel_app.core.models import Difficulty, LogCategory, MatchConfig, RoundStatus, RoundWinner
from duel_app.core.services.challenge_source import FALLBACK_CHALLENGE
from duel_app.core.services.round_clock import RoundClock


class FailingSource:
    async def generate(self, difficulty, topic=None):
        raise RuntimeError("provider offline")


class GatedSource:
    """Holds every request until the test releases it."""

    def __init__(self, *challenges):
        self._challenges = list(challenges)
        self.release = asyncio.Event()

    async def generate(self, difficulty, topic=None):
        await self.release.wait()
        return self._challenges.pop(0)


def _controller(source, manual_sleep, **kwargs):
    clock = RoundClock(rng=FixedOffsetRandom(0.0), sleep=manual_sleep)
    return DuelController(challenge_source=source, clock=clock, **kwargs), clock


async def _started(controller, difficulty=Difficulty.NOVICE, topic="Random Mix"):
    controller.start_match(MatchConfig(difficulty=difficulty, topic=topic))
    await controller.wait_for_challenge()
    return controller.snapshot()


class TestMatchStart:
    @pytest.mark.asyncio
    async def test_loading_then_challenge_then_clock(self, manual_sleep):
        source = StubSource(make_challenge())
        controller, clock = _controller(source, manual_sleep)

        first = controller.start_match(MatchConfig(difficulty=Difficulty.NOVICE, topic="Random Mix"))
        assert first.loading
        assert first.challenge is None
        assert first.status is RoundStatus.PLAYING
        assert clock.handle is None

        await controller.wait_for_challenge()
        snapshot = controller.snapshot()

        assert not snapshot.loading
        assert snapshot.challenge.id == "c1"
        assert clock.handle is not None and clock.handle.running
        assert [entry.category for entry in snapshot.log] == [LogCategory.INFO, LogCategory.INFO]
        assert snapshot.player.health == MAX_HEALTH
        assert snapshot.is_win is None

    @pytest.mark.asyncio
    async def test_random_mix_requests_without_topic(self, manual_sleep):
        source = StubSource(make_challenge())
        controller, _ = _controller(source, manual_sleep)

        await _started(controller, topic="Random Mix")
        await _started(controller, difficulty=Difficulty.EXPERT, topic="Bitwise Operators")

        assert source.calls == [
            (Difficulty.NOVICE, None),
            (Difficulty.EXPERT, "Bitwise Operators"),
        ]

    @pytest.mark.asyncio
    async def test_source_failure_uses_fallback(self, manual_sleep):
        controller, _ = _controller(FailingSource(), manual_sleep)

        snapshot = await _started(controller)

        assert snapshot.challenge == FALLBACK_CHALLENGE
        assert controller.submit_answer("30")
        assert controller.snapshot().result.winner is RoundWinner.PLAYER

    @pytest.mark.asyncio
    async def test_hanging_source_times_out_to_fallback(self, manual_sleep):
        source = GatedSource(make_challenge())
        controller, _ = _controller(source, manual_sleep, challenge_timeout=0.01)

        snapshot = await _started(controller)

        assert snapshot.challenge.id == FALLBACK_CHALLENGE.id

    def test_operations_need_a_match(self):
        controller = DuelController(challenge_source=StubSource(make_challenge()))
        assert not controller.has_match()
        with pytest.raises(NoActiveMatchError):
            controller.snapshot()
        with pytest.raises(NoActiveMatchError):
            controller.submit_answer("30")

    def test_topics_catalog(self):
        topics = DuelController.get_topics()
        assert len(topics) == 20
        assert topics[0] == "Random Mix"


class TestRounds:
    @pytest.mark.asyncio
    async def test_correct_answer_cancels_clock(self, manual_sleep):
        controller, clock = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)
        handle = clock.handle

        assert controller.submit_answer(" 30 ")
        snapshot = controller.snapshot()

        assert snapshot.player.score == 100
        assert snapshot.opponent.health == 2
        assert snapshot.status is RoundStatus.RESULT
        assert snapshot.result.winner is RoundWinner.PLAYER
        assert handle.cancelled

        await manual_sleep.tick(400)
        assert controller.snapshot().player.health == MAX_HEALTH

    @pytest.mark.asyncio
    async def test_clock_expiry_gives_round_to_ai(self, manual_sleep):
        controller, clock = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)

        await manual_sleep.tick(310)
        snapshot = controller.snapshot()

        assert snapshot.opponent.score == 100
        assert snapshot.player.health == 2
        assert snapshot.status is RoundStatus.RESULT
        assert snapshot.result.winner is RoundWinner.AI
        assert snapshot.progress == 100.0

        assert not controller.submit_answer("30")
        assert controller.snapshot().player.score == 0

    @pytest.mark.asyncio
    async def test_advance_resets_clock_and_fetches_again(self, manual_sleep):
        source = StubSource(make_challenge(challenge_id="c1"), make_challenge(challenge_id="c2"))
        controller, clock = _controller(source, manual_sleep)
        await _started(controller)
        await manual_sleep.tick(20)
        controller.submit_answer("30")

        assert controller.advance()
        loading = controller.snapshot()
        assert loading.loading
        assert loading.progress == 0.0
        assert loading.result is None
        assert loading.round_number == 2

        await controller.wait_for_challenge()
        assert controller.snapshot().challenge.id == "c2"
        assert len(source.calls) == 2

    @pytest.mark.asyncio
    async def test_advance_during_play_is_ignored(self, manual_sleep):
        controller, _ = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)

        assert not controller.advance()
        assert controller.snapshot().round_number == 1

    @pytest.mark.asyncio
    async def test_wrong_answers_until_game_over(self, manual_sleep):
        controller, clock = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)

        for _ in range(MAX_HEALTH):
            assert controller.submit_answer("31")
            controller.advance()
            await controller.wait_for_challenge()

        snapshot = controller.snapshot()
        assert snapshot.status is RoundStatus.GAME_OVER
        assert snapshot.player.health == 0
        assert snapshot.player.score == 0
        assert snapshot.opponent.score == 300
        assert snapshot.is_win is False
        assert not controller.advance()
        assert not controller.submit_answer("30")
        assert clock.handle is None or not clock.handle.running

    @pytest.mark.asyncio
    async def test_multiple_choice_selection(self, manual_sleep):
        controller, _ = _controller(StubSource(make_choice_challenge()), manual_sleep)
        await _started(controller)

        with pytest.raises(ValueError):
            controller.select_option(4)
        assert controller.select_option(1)

        snapshot = controller.snapshot()
        assert snapshot.result.winner is RoundWinner.PLAYER
        assert snapshot.player.score == 100

    @pytest.mark.asyncio
    async def test_select_option_rejects_short_answer(self, manual_sleep):
        controller, _ = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)

        with pytest.raises(ValueError):
            controller.select_option(0)

    @pytest.mark.asyncio
    async def test_select_option_after_round_is_ignored(self, manual_sleep):
        controller, _ = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)
        controller.submit_answer("30")

        assert controller.select_option(0) is False
        assert controller.select_option(9) is False
        assert controller.snapshot().player.score == 100

    @pytest.mark.asyncio
    async def test_select_option_while_loading_is_ignored(self, manual_sleep):
        controller, _ = _controller(StubSource(make_choice_challenge()), manual_sleep)
        controller.start_match(MatchConfig(difficulty=Difficulty.NOVICE, topic="Random Mix"))

        assert controller.select_option(1) is False
        await controller.wait_for_challenge()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_restart_discards_late_fetch(self, manual_sleep):
        gated = GatedSource(make_challenge(challenge_id="fresh"))
        controller, _ = _controller(gated, manual_sleep)

        controller.start_match(MatchConfig(difficulty=Difficulty.NOVICE, topic="Random Mix"))
        controller.start_match(MatchConfig(difficulty=Difficulty.EXPERT, topic="Random Mix"))
        gated.release.set()
        await controller.wait_for_challenge()
        await asyncio.sleep(0)

        snapshot = controller.snapshot()
        assert snapshot.config.difficulty is Difficulty.EXPERT
        assert snapshot.challenge.id == "fresh"
        assert len([entry for entry in snapshot.log if "loaded" in entry.message]) == 1

    @pytest.mark.asyncio
    async def test_stop_match_cancels_clock(self, manual_sleep):
        controller, clock = _controller(StubSource(make_challenge()), manual_sleep)
        await _started(controller)
        handle = clock.handle

        controller.stop_match()
        await manual_sleep.tick(400)

        assert handle.cancelled
        assert not controller.has_match()
