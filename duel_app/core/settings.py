"""Runtime settings read from the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from duel_app.constants.duel_constants import DEFAULT_CHALLENGE_TIMEOUT_SECONDS
from duel_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from duel_app.core.services.gemini_source import DEFAULT_MODEL


def _env_float(name: str, default: float, environ: dict[str, str]) -> float:
    raw_value = environ.get(name, "").strip()
    if not raw_value:
        return default
    try:
        return float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw_value!r}.") from exc


def _env_int(name: str, default: int, environ: dict[str, str]) -> int:
    raw_value = environ.get(name, "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw_value!r}.") from exc


@dataclass(frozen=True)
class AppSettings:
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    challenge_timeout_seconds: float | None = DEFAULT_CHALLENGE_TIMEOUT_SECONDS
    challenge_bank_path: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    @property
    def use_gemini(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AppSettings":
        env = dict(os.environ if environ is None else environ)
        timeout = _env_float("CODEDUEL_CHALLENGE_TIMEOUT", DEFAULT_CHALLENGE_TIMEOUT_SECONDS, env)
        bank_path = env.get("CODEDUEL_CHALLENGE_BANK", "").strip()
        return cls(
            api_key=(env.get("GEMINI_API_KEY") or env.get("API_KEY") or "").strip() or None,
            model=env.get("CODEDUEL_MODEL", "").strip() or DEFAULT_MODEL,
            challenge_timeout_seconds=timeout if timeout > 0 else None,
            challenge_bank_path=Path(bank_path) if bank_path else None,
            host=env.get("CODEDUEL_HOST", "").strip() or DEFAULT_HOST,
            port=_env_int("CODEDUEL_PORT", DEFAULT_PORT, env),
            log_level=(env.get("CODEDUEL_LOG_LEVEL", "").strip() or "INFO").upper(),
        )
