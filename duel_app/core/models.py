"""Domain models for the duel application."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from duel_app.constants.duel_constants import MAX_HEALTH


class Difficulty(str, Enum):
    NOVICE = "Novice"
    INTERMEDIATE = "Intermediate"
    EXPERT = "Expert"


class ChallengeKind(str, Enum):
    SHORT_ANSWER = "SHORT_ANSWER"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


class RoundStatus(str, Enum):
    PLAYING = "PLAYING"
    RESULT = "RESULT"
    GAME_OVER = "GAME_OVER"


class LogCategory(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    DAMAGE = "damage"
    AI = "ai"


class RoundOutcome(str, Enum):
    PLAYER_WIN = "PLAYER_WIN"
    PLAYER_WRONG = "PLAYER_WRONG"
    AI_WIN = "AI_WIN"


class RoundWinner(str, Enum):
    PLAYER = "player"
    AI = "ai"


def normalize_answer(text: str) -> str:
    """Case and surrounding-whitespace insensitive form used for grading."""
    return text.strip().lower()


@dataclass(frozen=True, slots=True)
class Challenge:
    """One question issued for a single round."""

    id: str
    topic: str
    question: str
    code_snippet: str
    correct_answer: str
    explanation: str
    kind: ChallengeKind = ChallengeKind.SHORT_ANSWER
    options: tuple[str, ...] = ()

    def is_correct(self, answer: str) -> bool:
        return normalize_answer(answer) == normalize_answer(self.correct_answer)


@dataclass(frozen=True, slots=True)
class Contestant:
    """Either the human player or the simulated opponent."""

    name: str
    avatar: str
    is_ai: bool
    score: int = 0
    health: int = MAX_HEALTH

    def add_score(self, delta: int) -> Contestant:
        return replace(self, score=max(0, self.score + delta))

    def take_damage(self, amount: int = 1) -> Contestant:
        return replace(self, health=max(0, min(MAX_HEALTH, self.health - amount)))

    @property
    def is_defeated(self) -> bool:
        return self.health == 0


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Observational record appended to the battle log."""

    message: str
    category: LogCategory
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class RoundResult:
    """Outcome shown while a round sits in RESULT (or after the final round)."""

    winner: RoundWinner
    outcome: RoundOutcome
    message: str
    correct_answer: str
    explanation: str


@dataclass(frozen=True, slots=True)
class MatchConfig:
    """Lobby choices, fixed for the lifetime of a match."""

    difficulty: Difficulty
    topic: str
