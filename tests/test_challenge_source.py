"""Tests for challenge validation, the fallback path and the Gemini source."""

import json
from dataclasses import replace

import httpx
import pytest

from conftest import StubSource, make_challenge, make_choice_challenge
from duel_app.core.errors import MalformedChallengeError
from duel_app.core.models import ChallengeKind, Difficulty
from duel_app.core.services.challenge_source import (
    FALLBACK_CHALLENGE,
    fetch_challenge,
    parse_challenge_payload,
    resolve_topic,
    validate_challenge,
)
from duel_app.core.services.gemini_source import (
    CHALLENGE_RESPONSE_SCHEMA,
    GeminiChallengeSource,
    build_prompt,
    decode_json_text,
)

VALID_PAYLOAD = {
    "topic": "Pointers",
    "question": "What is printed?",
    "codeSnippet": "int a = 1;\nprintf(\"%d\", a);",
    "correctAnswer": "1",
    "explanation": "a holds 1.",
    "type": "SHORT_ANSWER",
}


def _gemini_response(payload, status_code=200):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


class TestValidation:
    def test_payload_builds_challenge(self):
        challenge = parse_challenge_payload(VALID_PAYLOAD, challenge_id="abc123def")

        assert challenge.id == "abc123def"
        assert challenge.kind is ChallengeKind.SHORT_ANSWER
        assert challenge.code_snippet.startswith("int a")
        assert challenge.options == ()

    def test_multiple_choice_payload(self):
        payload = dict(VALID_PAYLOAD, type="MULTIPLE_CHOICE", options=["0", " 1 ", "2", "3"])
        challenge = parse_challenge_payload(payload, challenge_id="x")

        assert challenge.kind is ChallengeKind.MULTIPLE_CHOICE
        assert challenge.options == ("0", "1", "2", "3")

    @pytest.mark.parametrize(
        "payload",
        [
            {key: value for key, value in VALID_PAYLOAD.items() if key != "correctAnswer"},
            dict(VALID_PAYLOAD, question="   "),
            dict(VALID_PAYLOAD, type="TRUE_FALSE"),
            dict(VALID_PAYLOAD, type="MULTIPLE_CHOICE"),
            dict(VALID_PAYLOAD, type="MULTIPLE_CHOICE", options=["1", "2", "3"]),
            dict(VALID_PAYLOAD, type="MULTIPLE_CHOICE", options=["5", "6", "7", "8"]),
            ["not", "an", "object"],
        ],
    )
    def test_malformed_payloads_raise(self, payload):
        with pytest.raises(MalformedChallengeError):
            parse_challenge_payload(payload, challenge_id="x")

    def test_choice_answer_matching_is_normalized(self):
        challenge = replace(make_choice_challenge(), correct_answer=" b ")
        assert validate_challenge(challenge) is challenge

    def test_short_answer_with_options_is_rejected(self):
        with pytest.raises(MalformedChallengeError):
            validate_challenge(replace(make_challenge(), options=("a", "b", "c", "d")))

    def test_random_mix_resolves_to_no_topic(self):
        assert resolve_topic("Random Mix") is None
        assert resolve_topic(None) is None
        assert resolve_topic("Function Pointers") == "Function Pointers"


class TestFetchChallenge:
    @pytest.mark.asyncio
    async def test_passes_through_valid_challenge(self):
        source = StubSource(make_challenge())
        challenge = await fetch_challenge(source, Difficulty.EXPERT, "Random Mix")

        assert challenge.id == "c1"
        assert source.calls == [(Difficulty.EXPERT, None)]

    @pytest.mark.asyncio
    async def test_malformed_challenge_falls_back(self):
        broken = replace(make_choice_challenge(), options=("A", "B"))
        challenge = await fetch_challenge(StubSource(broken), Difficulty.NOVICE)
        assert challenge is FALLBACK_CHALLENGE

    @pytest.mark.asyncio
    async def test_wrong_return_type_falls_back(self):
        challenge = await fetch_challenge(StubSource({"question": "?"}), Difficulty.NOVICE)
        assert challenge is FALLBACK_CHALLENGE

    def test_fallback_challenge_contents(self):
        assert FALLBACK_CHALLENGE.id == "fallback"
        assert FALLBACK_CHALLENGE.correct_answer == "30"
        assert FALLBACK_CHALLENGE.kind is ChallengeKind.SHORT_ANSWER
        assert validate_challenge(FALLBACK_CHALLENGE) is FALLBACK_CHALLENGE


class TestGeminiSource:
    def test_prompt_mentions_topic_or_catalog(self):
        focused = build_prompt(Difficulty.EXPERT, "Variadic Functions")
        random_pick = build_prompt(Difficulty.NOVICE, None)

        assert "Expert level player" in focused
        assert "Focus specifically on the topic: Variadic Functions." in focused
        assert "Choose a random topic from: Basic Syntax" in random_pick

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiChallengeSource(api_key="")

    def test_decode_strips_code_fences(self):
        assert decode_json_text('```json\n{"a": 1}\n```') == {"a": 1}
        with pytest.raises(MalformedChallengeError):
            decode_json_text("not json")

    @pytest.mark.asyncio
    async def test_generate_posts_schema_and_parses_reply(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return _gemini_response(VALID_PAYLOAD)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            source = GeminiChallengeSource(api_key="secret", client=client)
            challenge = await source.generate(Difficulty.INTERMEDIATE, "Pointers & Memory Addressing")

        assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
        assert seen["key"] == "secret"
        config = seen["body"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == CHALLENGE_RESPONSE_SCHEMA
        assert config["temperature"] == 0.8
        assert "Pointers & Memory Addressing" in seen["body"]["contents"][0]["parts"][0]["text"]
        assert challenge.topic == "Pointers"
        assert len(challenge.id) == 9

    @pytest.mark.asyncio
    async def test_http_error_falls_back_through_fetch(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "busy"}))
        async with httpx.AsyncClient(transport=transport) as client:
            source = GeminiChallengeSource(api_key="secret", client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await source.generate(Difficulty.NOVICE)
            challenge = await fetch_challenge(source, Difficulty.NOVICE)

        assert challenge is FALLBACK_CHALLENGE

    @pytest.mark.asyncio
    async def test_empty_candidates_are_malformed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
        async with httpx.AsyncClient(transport=transport) as client:
            source = GeminiChallengeSource(api_key="secret", client=client)
            with pytest.raises(MalformedChallengeError):
                await source.generate(Difficulty.NOVICE)
