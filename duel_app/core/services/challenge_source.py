"""Contract and safety net for challenge content providers.

Architecture note:
    Providers only have to implement ``generate``. Everything that keeps a
    match alive when a provider misbehaves lives in ``fetch_challenge``: a
    raised error, a timeout or a challenge that fails validation are all
    logged and replaced by ``FALLBACK_CHALLENGE`` so a round can always start.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from duel_app.constants.duel_constants import RANDOM_MIX
from duel_app.core.errors import MalformedChallengeError
from duel_app.core.models import Challenge, ChallengeKind, Difficulty, normalize_answer

logger = logging.getLogger(__name__)

MULTIPLE_CHOICE_OPTION_COUNT = 4

FALLBACK_CHALLENGE = Challenge(
    id="fallback",
    topic="Fallback",
    question='What is the output of printf("%d", 10 + 20);?',
    code_snippet='#include <stdio.h>\n\nint main() {\n  printf("%d", 10 + 20);\n  return 0;\n}',
    correct_answer="30",
    explanation="Basic arithmetic addition.",
    kind=ChallengeKind.SHORT_ANSWER,
)


class ChallengeSource(Protocol):
    """Anything able to produce a challenge for a difficulty and optional topic."""

    async def generate(self, difficulty: Difficulty, topic: str | None = None) -> Challenge:
        ...


class ChallengePayload(BaseModel):
    """Wire shape of a generated challenge (camelCase keys as produced by the model)."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    topic: str = Field(min_length=1)
    question: str = Field(min_length=1)
    code_snippet: str = Field(default="", alias="codeSnippet")
    correct_answer: str = Field(min_length=1, alias="correctAnswer")
    explanation: str = ""
    kind: ChallengeKind = Field(default=ChallengeKind.SHORT_ANSWER, alias="type")
    options: list[str] | None = None

    @field_validator("options")
    @classmethod
    def _strip_options(cls, options: list[str] | None) -> list[str] | None:
        if options is None:
            return None
        return [option.strip() for option in options]

    def to_challenge(self, challenge_id: str) -> Challenge:
        options = tuple(self.options or ()) if self.kind is ChallengeKind.MULTIPLE_CHOICE else ()
        challenge = Challenge(
            id=challenge_id,
            topic=self.topic,
            question=self.question,
            code_snippet=self.code_snippet,
            correct_answer=self.correct_answer,
            explanation=self.explanation,
            kind=self.kind,
            options=options,
        )
        return validate_challenge(challenge)


def parse_challenge_payload(data: object, challenge_id: str) -> Challenge:
    """Validate a decoded provider payload and build a ``Challenge`` from it."""
    try:
        payload = ChallengePayload.model_validate(data)
    except ValidationError as exc:
        raise MalformedChallengeError(f"Challenge payload failed validation: {exc}") from exc
    return payload.to_challenge(challenge_id)


def validate_challenge(challenge: Challenge) -> Challenge:
    """Check the invariants a round depends on and return the challenge unchanged."""
    if not challenge.question.strip():
        raise MalformedChallengeError("Challenge question is empty.")
    if not challenge.correct_answer.strip():
        raise MalformedChallengeError("Challenge has no correct answer.")

    if challenge.kind is ChallengeKind.MULTIPLE_CHOICE:
        if len(challenge.options) != MULTIPLE_CHOICE_OPTION_COUNT:
            raise MalformedChallengeError(
                f"Multiple choice challenge needs {MULTIPLE_CHOICE_OPTION_COUNT} options, "
                f"got {len(challenge.options)}."
            )
        expected = normalize_answer(challenge.correct_answer)
        if not any(normalize_answer(option) == expected for option in challenge.options):
            raise MalformedChallengeError("None of the options matches the correct answer.")
    elif challenge.options:
        raise MalformedChallengeError("Short answer challenges must not carry options.")
    return challenge


def resolve_topic(topic: str | None) -> str | None:
    """Map the lobby's Random Mix sentinel to "no topic"."""
    if topic is None or topic == RANDOM_MIX:
        return None
    return topic


async def fetch_challenge(
    source: ChallengeSource,
    difficulty: Difficulty,
    topic: str | None = None,
    timeout: float | None = None,
) -> Challenge:
    """Ask ``source`` for one challenge, substituting the fallback on any failure."""
    try:
        request = source.generate(difficulty, resolve_topic(topic))
        if timeout:
            challenge = await asyncio.wait_for(request, timeout)
        else:
            challenge = await request
        return validate_challenge(challenge)
    except asyncio.TimeoutError:
        logger.warning("Challenge source timed out after %.1fs; using fallback challenge.", timeout)
    except MalformedChallengeError as exc:
        logger.warning("Challenge source returned a malformed challenge (%s); using fallback.", exc)
    except Exception:
        logger.exception("Challenge source failed; using fallback challenge.")
    return FALLBACK_CHALLENGE
