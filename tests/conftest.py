import asyncio

import pytest

from duel_app.core.models import Challenge, ChallengeKind


class FixedOffsetRandom:
    """Stands in for random.Random so clock durations are predictable."""

    def __init__(self, offset: float = 0.0):
        self.offset = offset

    def uniform(self, a, b):
        return self.offset


class ManualSleep:
    """Sleep replacement that only returns when the test calls tick()."""

    def __init__(self):
        self._waiters = []

    async def __call__(self, _seconds):
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    async def tick(self, count=1):
        for _ in range(count):
            await asyncio.sleep(0)
            waiters, self._waiters = self._waiters, []
            for future in waiters:
                if not future.done():
                    future.set_result(None)
            await asyncio.sleep(0)


class StubSource:
    """Challenge source returning queued challenges and recording calls."""

    def __init__(self, *challenges):
        self._challenges = list(challenges)
        self.calls = []

    async def generate(self, difficulty, topic=None):
        self.calls.append((difficulty, topic))
        if len(self._challenges) > 1:
            return self._challenges.pop(0)
        return self._challenges[0]


def make_challenge(answer="30", challenge_id="c1", topic="Operators & Expressions"):
    return Challenge(
        id=challenge_id,
        topic=topic,
        question='What is the output of printf("%d", 10 + 20);?',
        code_snippet='printf("%d", 10 + 20);',
        correct_answer=answer,
        explanation="Basic arithmetic addition.",
    )


def make_choice_challenge(challenge_id="mc1"):
    return Challenge(
        id=challenge_id,
        topic="Variables & Data Types",
        question="Pick B.",
        code_snippet="",
        correct_answer="B",
        explanation="B is correct.",
        kind=ChallengeKind.MULTIPLE_CHOICE,
        options=("A", "B", "C", "D"),
    )


@pytest.fixture
def manual_sleep():
    return ManualSleep()
