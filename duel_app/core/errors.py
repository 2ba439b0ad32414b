"""Exception types raised by the duel core."""

from __future__ import annotations


class DuelError(Exception):
    """Base class for duel-specific failures."""


class MalformedChallengeError(DuelError):
    """Raised when a content provider returns a challenge that fails validation."""


class ChallengeBankError(DuelError):
    """Raised when an offline challenge file cannot be parsed."""


class NoActiveMatchError(DuelError, RuntimeError):
    """Raised when a match operation is requested before a match was started."""
