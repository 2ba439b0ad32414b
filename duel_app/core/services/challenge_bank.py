"""Offline challenge source that draws from a bundled or user-supplied file."""

from __future__ import annotations

from dataclasses import replace
import logging
from pathlib import Path
import random
from uuid import uuid4

from duel_app.core.challenge_importer import BankEntry, load_challenges_from_file
from duel_app.core.models import Challenge, Difficulty

logger = logging.getLogger(__name__)

DEFAULT_BANK_PATH = Path(__file__).resolve().parent.parent.parent / "data" / "challenges.txt"


class ChallengeBankSource:
    """Serves challenges from a fixed bank without repeating until it runs dry.

    Entries are filtered by difficulty (entries without one suit every level)
    and by topic when a topic is requested. A topic with no matching entries
    falls back to the whole difficulty pool.
    """

    def __init__(self, entries: list[BankEntry], rng: random.Random | None = None) -> None:
        if not entries:
            raise ValueError("Challenge bank cannot be empty.")
        self._entries = list(entries)
        self._rng = rng or random.Random()
        self._served: set[str] = set()

    @classmethod
    def from_file(cls, file_path: Path | None = None) -> "ChallengeBankSource":
        path = file_path or DEFAULT_BANK_PATH
        entries = load_challenges_from_file(path)
        logger.info("Loaded %d challenges from %s", len(entries), path)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_topics(self) -> list[str]:
        return sorted({entry.challenge.topic for entry in self._entries})

    async def generate(self, difficulty: Difficulty, topic: str | None = None) -> Challenge:
        candidates = self._candidates(difficulty, topic)
        if not candidates:
            raise LookupError(f"No bank challenges available for {difficulty.value}.")

        unseen = [entry for entry in candidates if entry.challenge.id not in self._served]
        if not unseen:
            # Every candidate was served once; start a fresh cycle.
            for entry in candidates:
                self._served.discard(entry.challenge.id)
            unseen = candidates

        chosen = self._rng.choice(unseen)
        self._served.add(chosen.challenge.id)
        return replace(chosen.challenge, id=uuid4().hex[:9])

    def _candidates(self, difficulty: Difficulty, topic: str | None) -> list[BankEntry]:
        by_difficulty = [
            entry for entry in self._entries if entry.difficulty in (None, difficulty)
        ]
        if topic is None:
            return by_difficulty
        wanted = topic.strip().lower()
        by_topic = [entry for entry in by_difficulty if entry.challenge.topic.lower() == wanted]
        return by_topic or by_difficulty
