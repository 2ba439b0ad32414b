"""Pure transition rules for a duel.

Architecture note:
    The whole match is an immutable ``BattleState`` value. Events are fed
    through ``transition`` which inspects the current status, rejects events
    that are not valid for it and returns the next state together with the
    effects the caller must carry out (log entries to append, the clock to arm
    or cancel, the next challenge to request). Nothing here touches timers,
    tasks or I/O, so every rule can be exercised synchronously in tests.

    ``status`` is derived: a state whose player or opponent has no health left
    is GAME_OVER no matter which phase it was in, and no event leaves that
    status again.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from duel_app.constants.duel_constants import (
    AI_WIN_SCORE,
    LOG_AI_TIMEOUT,
    LOG_CHALLENGE_LOADED,
    LOG_NEXT_ROUND,
    LOG_PLAYER_CORRECT,
    LOG_PLAYER_WRONG,
    OPPONENT_AVATAR,
    OPPONENT_NAME,
    PLAYER_AVATAR,
    PLAYER_NAME,
    PLAYER_WIN_SCORE,
    RESULT_PLAYER_WIN,
    RESULT_TIMEOUT,
    RESULT_WRONG_ANSWER,
    WRONG_ANSWER_PENALTY,
)
from duel_app.core.models import (
    Challenge,
    Contestant,
    LogCategory,
    LogEntry,
    MatchConfig,
    RoundOutcome,
    RoundResult,
    RoundStatus,
    RoundWinner,
)


# --- Events ---


@dataclass(frozen=True, slots=True)
class ChallengeLoaded:
    round_id: int
    challenge: Challenge


@dataclass(frozen=True, slots=True)
class AnswerSubmitted:
    answer: str


@dataclass(frozen=True, slots=True)
class ClockExpired:
    round_id: int


@dataclass(frozen=True, slots=True)
class AdvanceRequested:
    pass


BattleEvent = ChallengeLoaded | AnswerSubmitted | ClockExpired | AdvanceRequested


# --- Effects ---


@dataclass(frozen=True, slots=True)
class AppendLog:
    entry: LogEntry


@dataclass(frozen=True, slots=True)
class ScoreChanged:
    is_ai: bool
    delta: int


@dataclass(frozen=True, slots=True)
class HealthChanged:
    is_ai: bool
    delta: int


@dataclass(frozen=True, slots=True)
class RequestChallenge:
    round_id: int


@dataclass(frozen=True, slots=True)
class ArmClock:
    round_id: int


@dataclass(frozen=True, slots=True)
class CancelClock:
    pass


BattleEffect = AppendLog | ScoreChanged | HealthChanged | RequestChallenge | ArmClock | CancelClock


@dataclass(frozen=True, slots=True)
class BattleState:
    """Snapshot of a match between two transitions."""

    config: MatchConfig
    player: Contestant
    opponent: Contestant
    phase: RoundStatus = RoundStatus.PLAYING
    round_id: int = 1
    challenge: Challenge | None = None
    result: RoundResult | None = None

    @property
    def status(self) -> RoundStatus:
        if self.player.is_defeated or self.opponent.is_defeated:
            return RoundStatus.GAME_OVER
        return self.phase

    @property
    def is_loading(self) -> bool:
        return self.status is RoundStatus.PLAYING and self.challenge is None

    @property
    def is_win(self) -> bool:
        return self.player.health > 0


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of feeding one event into ``transition``."""

    state: BattleState
    effects: list[BattleEffect] = field(default_factory=list)
    accepted: bool = True

    @property
    def log_entries(self) -> list[LogEntry]:
        return [effect.entry for effect in self.effects if isinstance(effect, AppendLog)]


def start_battle(config: MatchConfig) -> Transition:
    """Create the opening state and ask for the first challenge."""
    state = BattleState(
        config=config,
        player=Contestant(name=PLAYER_NAME, avatar=PLAYER_AVATAR, is_ai=False),
        opponent=Contestant(name=OPPONENT_NAME, avatar=OPPONENT_AVATAR, is_ai=True),
    )
    return Transition(
        state=state,
        effects=[
            _log(LOG_NEXT_ROUND.format(round_number=state.round_id), LogCategory.INFO),
            RequestChallenge(round_id=state.round_id),
        ],
    )


def transition(state: BattleState, event: BattleEvent) -> Transition:
    """Apply ``event`` to ``state``; events invalid for the current status are ignored."""
    status = state.status
    if status is RoundStatus.GAME_OVER:
        return _ignore(state)

    if isinstance(event, ChallengeLoaded):
        if status is not RoundStatus.PLAYING or state.challenge is not None:
            return _ignore(state)
        if event.round_id != state.round_id:
            return _ignore(state)
        return Transition(
            state=replace(state, challenge=event.challenge),
            effects=[
                _log(LOG_CHALLENGE_LOADED.format(topic=event.challenge.topic), LogCategory.INFO),
                ArmClock(round_id=state.round_id),
            ],
        )

    if isinstance(event, AnswerSubmitted):
        challenge = state.challenge
        if status is not RoundStatus.PLAYING or challenge is None:
            return _ignore(state)
        if challenge.is_correct(event.answer):
            return _resolve_player_win(state, challenge)
        return _resolve_wrong_answer(state, challenge, event.answer)

    if isinstance(event, ClockExpired):
        challenge = state.challenge
        if status is not RoundStatus.PLAYING or challenge is None:
            return _ignore(state)
        if event.round_id != state.round_id:
            return _ignore(state)
        return _resolve_timeout(state, challenge)

    if isinstance(event, AdvanceRequested):
        if status is not RoundStatus.RESULT:
            return _ignore(state)
        next_round = state.round_id + 1
        return Transition(
            state=replace(
                state,
                phase=RoundStatus.PLAYING,
                round_id=next_round,
                challenge=None,
                result=None,
            ),
            effects=[
                CancelClock(),
                _log(LOG_NEXT_ROUND.format(round_number=next_round), LogCategory.INFO),
                RequestChallenge(round_id=next_round),
            ],
        )

    raise TypeError(f"Unsupported battle event: {event!r}")


def _resolve_player_win(state: BattleState, challenge: Challenge) -> Transition:
    player = state.player.add_score(PLAYER_WIN_SCORE)
    opponent = state.opponent.take_damage()
    result = RoundResult(
        winner=RoundWinner.PLAYER,
        outcome=RoundOutcome.PLAYER_WIN,
        message=RESULT_PLAYER_WIN,
        correct_answer=challenge.correct_answer,
        explanation=challenge.explanation,
    )
    return Transition(
        state=replace(state, player=player, opponent=opponent, phase=RoundStatus.RESULT, result=result),
        effects=[
            CancelClock(),
            ScoreChanged(is_ai=False, delta=player.score - state.player.score),
            HealthChanged(is_ai=True, delta=opponent.health - state.opponent.health),
            _log(LOG_PLAYER_CORRECT, LogCategory.SUCCESS),
        ],
    )


def _resolve_wrong_answer(state: BattleState, challenge: Challenge, answer: str) -> Transition:
    # A wrong answer costs the penalty and the round.
    penalized = state.player.add_score(-WRONG_ANSWER_PENALTY)
    player = penalized.take_damage()
    opponent = state.opponent.add_score(AI_WIN_SCORE)
    result = RoundResult(
        winner=RoundWinner.AI,
        outcome=RoundOutcome.PLAYER_WRONG,
        message=RESULT_WRONG_ANSWER,
        correct_answer=challenge.correct_answer,
        explanation=challenge.explanation,
    )
    return Transition(
        state=replace(state, player=player, opponent=opponent, phase=RoundStatus.RESULT, result=result),
        effects=[
            CancelClock(),
            ScoreChanged(is_ai=False, delta=penalized.score - state.player.score),
            ScoreChanged(is_ai=True, delta=opponent.score - state.opponent.score),
            HealthChanged(is_ai=False, delta=player.health - state.player.health),
            _log(LOG_PLAYER_WRONG.format(answer=answer), LogCategory.DAMAGE),
        ],
    )


def _resolve_timeout(state: BattleState, challenge: Challenge) -> Transition:
    player = state.player.take_damage()
    opponent = state.opponent.add_score(AI_WIN_SCORE)
    result = RoundResult(
        winner=RoundWinner.AI,
        outcome=RoundOutcome.AI_WIN,
        message=RESULT_TIMEOUT,
        correct_answer=challenge.correct_answer,
        explanation=challenge.explanation,
    )
    return Transition(
        state=replace(state, player=player, opponent=opponent, phase=RoundStatus.RESULT, result=result),
        effects=[
            CancelClock(),
            ScoreChanged(is_ai=True, delta=opponent.score - state.opponent.score),
            HealthChanged(is_ai=False, delta=player.health - state.player.health),
            _log(LOG_AI_TIMEOUT, LogCategory.AI),
        ],
    )


def _ignore(state: BattleState) -> Transition:
    return Transition(state=state, effects=[], accepted=False)


def _log(message: str, category: LogCategory) -> AppendLog:
    return AppendLog(entry=LogEntry(message=message, category=category))
