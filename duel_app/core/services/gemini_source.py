"""Challenge source backed by the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from uuid import uuid4

import httpx

from duel_app.constants.duel_constants import RANDOM_TOPIC_POOL
from duel_app.core.errors import MalformedChallengeError
from duel_app.core.models import Challenge, Difficulty
from duel_app.core.services.challenge_source import parse_challenge_payload

logger = logging.getLogger(__name__)

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.8

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")

CHALLENGE_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "topic": {
            "type": "STRING",
            "description": "The specific C programming topic (e.g., Pointers, Structs, Macros).",
        },
        "question": {"type": "STRING", "description": "The challenge question text."},
        "codeSnippet": {
            "type": "STRING",
            "description": "A valid C code snippet relevant to the question. Use standard formatting.",
        },
        "correctAnswer": {
            "type": "STRING",
            "description": "The precise correct answer. If code, keep it short.",
        },
        "explanation": {
            "type": "STRING",
            "description": "A brief educational explanation of why the answer is correct.",
        },
        "type": {"type": "STRING", "enum": ["SHORT_ANSWER", "MULTIPLE_CHOICE"]},
        "options": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "4 options if type is MULTIPLE_CHOICE. One must be the correct answer.",
        },
    },
    "required": ["topic", "question", "codeSnippet", "correctAnswer", "explanation", "type"],
}


def build_prompt(difficulty: Difficulty, topic: str | None) -> str:
    if topic:
        focus = f"Focus specifically on the topic: {topic}."
    else:
        focus = f"Choose a random topic from: {', '.join(RANDOM_TOPIC_POOL)}."
    return (
        f"Generate a unique, single C programming challenge for a {difficulty.value} level player.\n"
        f"{focus}\n\n"
        "Constraints:\n"
        "- Code snippets should be valid C.\n"
        "- Questions should test understanding of output, memory layout, syntax, "
        "or potential bugs (segfaults).\n"
        '- If specific topics like "Pointers" are chosen, ensure the question involves '
        "pointer arithmetic or dereferencing.\n"
        "- Keep answers concise.\n"
    )


def extract_response_text(document: dict[str, Any]) -> str:
    candidates = document.get("candidates") or []
    if not candidates:
        raise MalformedChallengeError("Gemini response contained no candidates.")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts).strip()
    if not text:
        raise MalformedChallengeError("Gemini response contained no text.")
    return text


def decode_json_text(text: str) -> Any:
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedChallengeError(f"Gemini response was not valid JSON: {exc}") from exc


class GeminiChallengeSource:
    """Generates one C programming challenge per call."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        base_url: str = GEMINI_API_BASE_URL,
        client: httpx.AsyncClient | None = None,
        request_timeout: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("A Gemini API key is required.")
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._request_timeout = request_timeout

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    def build_request_body(self, difficulty: Difficulty, topic: str | None) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(difficulty, topic)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": CHALLENGE_RESPONSE_SCHEMA,
                "temperature": self._temperature,
            },
        }

    async def generate(self, difficulty: Difficulty, topic: str | None = None) -> Challenge:
        body = self.build_request_body(difficulty, topic)
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}
        if self._client is not None:
            response = await self._client.post(self.endpoint, headers=headers, json=body)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._request_timeout)) as client:
                response = await client.post(self.endpoint, headers=headers, json=body)
        response.raise_for_status()

        text = extract_response_text(response.json())
        challenge = parse_challenge_payload(decode_json_text(text), challenge_id=uuid4().hex[:9])
        logger.info("Generated %s challenge on %s", difficulty.value, challenge.topic)
        return challenge
