"""Service holding the live state and log of one match."""

from __future__ import annotations

import logging

from duel_app.core.models import LogEntry, MatchConfig
from duel_app.core.services.battle_state import (
    BattleEvent,
    BattleState,
    Transition,
    start_battle,
    transition,
)

logger = logging.getLogger(__name__)


class BattleSession:
    """Owns the current ``BattleState`` and the append-only battle log."""

    def __init__(self, config: MatchConfig) -> None:
        opening = start_battle(config)
        self._state: BattleState = opening.state
        self._log: list[LogEntry] = []
        self._opening = opening
        self._record(opening)

    @property
    def state(self) -> BattleState:
        return self._state

    @property
    def opening(self) -> Transition:
        return self._opening

    def dispatch(self, event: BattleEvent) -> Transition:
        """Feed one event through the transition rules and keep the result."""
        result = transition(self._state, event)
        if not result.accepted:
            logger.debug("Ignored %s in status %s", type(event).__name__, self._state.status.value)
            return result
        self._state = result.state
        self._record(result)
        return result

    def get_log(self) -> list[LogEntry]:
        return list(self._log)

    def _record(self, result: Transition) -> None:
        self._log.extend(result.log_entries)
