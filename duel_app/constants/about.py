"""Static metadata describing CodeDuel."""

APP_NAME = "CodeDuel"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "CodeDuel is a quiz duel against a simulated opponent. Answer each C "
    "programming challenge before the AI finishes compiling to knock out its "
    "health; a wrong answer or a slow one costs you a heart instead."
)
