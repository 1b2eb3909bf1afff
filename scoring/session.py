"""
Scoring Session

Owns the one authoritative MatchState for a scorer and persists it through
an injected store after every accepted transition. Store failures are
logged and never reach the caller; the in-memory state stays authoritative.
"""

from __future__ import annotations

import logging
from typing import Protocol

from scoring.match_state import DEFAULT_TOTAL_OVERS, MatchState
from scoring.rates import Scoreboard, scoreboard
from scoring.reducer import Action, NewMatch, reduce

logger = logging.getLogger(__name__)


class MatchStore(Protocol):
    """Durable home for one match snapshot."""

    def load(self) -> MatchState:
        """Saved state, or a fresh match if nothing usable is stored."""
        ...

    def save(self, state: MatchState) -> None:
        ...

    def clear(self) -> None:
        ...


class ScoringSession:
    """
    Single-writer scoring session.

    Args:
        store: Any MatchStore implementation
        default_total_overs: Overs used when NEW_MATCH does not name any
    """

    def __init__(self, store: MatchStore, default_total_overs: int = DEFAULT_TOTAL_OVERS):
        self.store = store
        self.default_total_overs = default_total_overs
        self.state = store.load()
        logger.info(f"Session loaded: inning {self.state.current_inning}, "
                    f"{len(self.state.ball_history)} balls in history")

    def dispatch(self, action: Action) -> MatchState:
        """Reduce one action, persist if the state changed, return the new state."""
        if isinstance(action, NewMatch) and action.total_overs is None:
            action = action._replace(total_overs=self.default_total_overs)

        next_state = reduce(self.state, action)

        if isinstance(action, NewMatch):
            self._clear()

        if next_state is not self.state:
            self.state = next_state
            self._save()

        return self.state

    def scoreboard(self) -> Scoreboard:
        return scoreboard(self.state)

    def _save(self) -> None:
        try:
            self.store.save(self.state)
        except Exception:
            logger.exception("Failed to persist match state")

    def _clear(self) -> None:
        try:
            self.store.clear()
        except Exception:
            logger.exception("Failed to clear stored match state")
