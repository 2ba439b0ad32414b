"""Round sequencing for a duel shared between the API and the battle rules."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging

from duel_app.constants.duel_constants import DEFAULT_CHALLENGE_TIMEOUT_SECONDS, TOPICS
from duel_app.core.errors import NoActiveMatchError
from duel_app.core.models import (
    Challenge,
    ChallengeKind,
    Contestant,
    LogEntry,
    MatchConfig,
    RoundResult,
    RoundStatus,
)
from duel_app.core.services.battle_session import BattleSession
from duel_app.core.services.battle_state import (
    AdvanceRequested,
    AnswerSubmitted,
    ArmClock,
    BattleEffect,
    BattleEvent,
    CancelClock,
    ChallengeLoaded,
    ClockExpired,
    HealthChanged,
    RequestChallenge,
    ScoreChanged,
    Transition,
)
from duel_app.core.services.challenge_source import ChallengeSource, fetch_challenge
from duel_app.core.services.round_clock import RoundClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MatchSnapshot:
    """Everything a host needs to draw the arena at one instant."""

    config: MatchConfig
    status: RoundStatus
    round_number: int
    loading: bool
    player: Contestant
    opponent: Contestant
    challenge: Challenge | None
    result: RoundResult | None
    progress: float
    log: list[LogEntry]
    is_win: bool | None


class DuelController:
    """Facade over the battle session, the round clock and the challenge source.

    All methods must be called from the event loop that runs the clock and
    the challenge fetches; the controller relies on that loop for ordering
    and does no locking of its own.
    """

    def __init__(
        self,
        challenge_source: ChallengeSource,
        clock: RoundClock | None = None,
        challenge_timeout: float | None = DEFAULT_CHALLENGE_TIMEOUT_SECONDS,
    ) -> None:
        self._source = challenge_source
        self._clock = clock or RoundClock()
        self._challenge_timeout = challenge_timeout
        self._session: BattleSession | None = None
        self._fetch_task: asyncio.Task | None = None

    # --- Match lifecycle ---

    @staticmethod
    def get_topics() -> list[str]:
        return list(TOPICS)

    def has_match(self) -> bool:
        return self._session is not None

    def start_match(self, config: MatchConfig) -> MatchSnapshot:
        """Begin a new match, abandoning any match still in progress."""
        self.stop_match()
        session = BattleSession(config)
        self._session = session
        logger.info("Match started: %s / %s", config.difficulty.value, config.topic)
        self._apply_effects(session.opening.effects)
        return self.snapshot()

    def stop_match(self) -> None:
        """Cancel the clock and any in-flight fetch and forget the match."""
        self._clock.reset()
        self._cancel_fetch()
        if self._session is not None:
            state = self._session.state
            logger.info(
                "Match stopped in round %s (%s); score %s vs %s",
                state.round_id,
                state.status.value,
                state.player.score,
                state.opponent.score,
            )
        self._session = None

    async def wait_for_challenge(self) -> None:
        """Wait until the pending challenge request (if any) has been handled."""
        task = self._fetch_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    # --- Player actions ---

    def submit_answer(self, answer: str) -> bool:
        """Submit typed text; returns whether it resolved the current round."""
        return self._dispatch(AnswerSubmitted(answer=answer)).accepted

    def select_option(self, option_index: int) -> bool:
        """Pick a multiple-choice option by its position."""
        state = self._require_session().state
        challenge = state.challenge
        if state.status is not RoundStatus.PLAYING or challenge is None:
            return False
        if challenge.kind is not ChallengeKind.MULTIPLE_CHOICE:
            raise ValueError("The current challenge is not multiple choice.")
        if not 0 <= option_index < len(challenge.options):
            raise ValueError(f"Option index {option_index} out of range.")
        return self.submit_answer(challenge.options[option_index])

    def advance(self) -> bool:
        """Move from a resolved round to the next one."""
        return self._dispatch(AdvanceRequested()).accepted

    # --- Observation ---

    def snapshot(self) -> MatchSnapshot:
        session = self._require_session()
        state = session.state
        status = state.status
        return MatchSnapshot(
            config=state.config,
            status=status,
            round_number=state.round_id,
            loading=state.is_loading,
            player=state.player,
            opponent=state.opponent,
            challenge=state.challenge,
            result=state.result,
            progress=self._clock.progress,
            log=session.get_log(),
            is_win=state.is_win if status is RoundStatus.GAME_OVER else None,
        )

    # --- Internals ---

    def _require_session(self) -> BattleSession:
        if self._session is None:
            raise NoActiveMatchError("No match is running.")
        return self._session

    def _dispatch(self, event: BattleEvent) -> Transition:
        result = self._require_session().dispatch(event)
        if result.accepted:
            self._apply_effects(result.effects)
        return result

    def _apply_effects(self, effects: list[BattleEffect]) -> None:
        session = self._require_session()
        for effect in effects:
            if isinstance(effect, CancelClock):
                self._clock.cancel()
            elif isinstance(effect, ArmClock):
                self._arm_clock(session, effect.round_id)
            elif isinstance(effect, RequestChallenge):
                self._request_challenge(session, effect.round_id)
            elif isinstance(effect, (ScoreChanged, HealthChanged)):
                logger.debug("%s", effect)

        if session.state.status is RoundStatus.GAME_OVER:
            self._clock.cancel()
            self._cancel_fetch()

    def _arm_clock(self, session: BattleSession, round_id: int) -> None:
        def on_expired() -> None:
            if self._session is not session:
                logger.debug("Dropped clock expiry from an abandoned match")
                return
            self._dispatch(ClockExpired(round_id=round_id))

        self._clock.arm(session.state.config.difficulty, on_expired=on_expired)

    def _request_challenge(self, session: BattleSession, round_id: int) -> None:
        self._clock.reset()
        self._cancel_fetch()
        self._fetch_task = asyncio.get_running_loop().create_task(
            self._load_challenge(session, round_id),
            name=f"challenge-fetch-{round_id}",
        )

    async def _load_challenge(self, session: BattleSession, round_id: int) -> None:
        config = session.state.config
        challenge = await fetch_challenge(
            self._source,
            config.difficulty,
            config.topic,
            timeout=self._challenge_timeout,
        )
        if self._session is not session or session.state.round_id != round_id:
            logger.debug("Dropped challenge %s fetched for stale round %s", challenge.id, round_id)
            return
        self._dispatch(ChallengeLoaded(round_id=round_id, challenge=challenge))

    def _cancel_fetch(self) -> None:
        task = self._fetch_task
        self._fetch_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
