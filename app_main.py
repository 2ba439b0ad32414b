"""Application entry point for CodeDuel."""

from __future__ import annotations

from duel_app.core.duel_controller import DuelController
from duel_app.core.services.challenge_bank import ChallengeBankSource
from duel_app.core.services.challenge_source import ChallengeSource
from duel_app.core.services.gemini_source import GeminiChallengeSource
from duel_app.core.settings import AppSettings
from duel_app.server.api_server import run_api_server
from duel_app.utils.logging_config import configure_logging


def build_challenge_source(settings: AppSettings) -> ChallengeSource:
    """Prefer Gemini when an API key is configured, otherwise the offline bank."""
    if settings.use_gemini:
        return GeminiChallengeSource(api_key=settings.api_key or "", model=settings.model)
    return ChallengeBankSource.from_file(settings.challenge_bank_path)


def main() -> None:
    """Initialize logging, build the controller and serve the arena."""
    settings = AppSettings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting CodeDuel…")

    source = build_challenge_source(settings)
    logger.info("Challenge source: %s", type(source).__name__)
    controller = DuelController(
        challenge_source=source,
        challenge_timeout=settings.challenge_timeout_seconds,
    )
    logger.info("Arena available at http://%s:%s/", settings.host, settings.port)
    run_api_server(
        controller=controller,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
