# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Scorekeeping session for a host application.

Loads the authoritative game from a store, runs one pure transition from
:mod:`scoring`, saves the result as a single document write, and tells any
registered listeners what changed.  A rejected transition is neither saved
nor announced.

Usage::

    keeper = Scorekeeper(JsonGameStore())
    keeper.subscribe(lambda change: print(change.kind, change.game.score))

    game = keeper.create_game(team_name="Hawks", opponent="Owls", lineups=lineups)
    keeper.start_game(game.id)
    result = keeper.record_at_bat(game.id, {"result": "single"})
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

import scoring
from box_score import BoxScore, GameSummary, build_box_score, build_game_summary
from game_store import GameStore, JsonGameStore
from models import (
    AtBatEvent,
    AtBatInput,
    Correction,
    Game,
    LineupEntry,
    Lineups,
    Pitch,
    Side,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameChange:
    """Notification sent to listeners after a change is saved."""
    kind: str  # "created", "started", "at_bat", "pitch", "correction", "lineup", "ended", "cancelled"
    game: Game
    event: Optional[AtBatEvent] = None
    correction: Optional[Correction] = None


Listener = Callable[[GameChange], None]


class Scorekeeper:
    """Single writer for the games in one store."""

    def __init__(self, store: GameStore, listeners: Sequence[Listener] = ()) -> None:
        self._store = store
        self._listeners: list[Listener] = list(listeners)

    @classmethod
    def from_config(cls) -> Scorekeeper:
        """Session over the JSON store in the configured data directory."""
        return cls(JsonGameStore())

    @property
    def store(self) -> GameStore:
        return self._store

    # -- listeners ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: GameChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # The change is already saved.
                logger.exception("Listener %r failed on %s for game %s",
                                 listener, change.kind, change.game.id)

    def _commit(self, game: Game, kind: str, *, event: AtBatEvent | None = None,
                correction: Correction | None = None) -> Game:
        saved = self._store.save_game(game)
        self._notify(GameChange(kind=kind, game=saved, event=event, correction=correction))
        return saved

    # -- lifecycle ---------------------------------------------------------

    def create_game(self, game_id: str | None = None, **fields: Any) -> Game:
        game = scoring.new_game(game_id or uuid.uuid4().hex, **fields)
        created = self._store.create_game(game)
        self._notify(GameChange(kind="created", game=created))
        return created

    def get_game(self, game_id: str) -> Game:
        return self._store.get_game(game_id)

    def start_game(self, game_id: str, *, home_pitcher_id: str | None = None,
                   away_pitcher_id: str | None = None) -> Game:
        game = scoring.start_game(self._store.get_game(game_id),
                                  home_pitcher_id=home_pitcher_id,
                                  away_pitcher_id=away_pitcher_id)
        return self._commit(game, "started")

    def end_game(self, game_id: str) -> Game:
        return self._commit(scoring.end_game(self._store.get_game(game_id)), "ended")

    def cancel_game(self, game_id: str) -> Game:
        return self._commit(scoring.cancel_game(self._store.get_game(game_id)), "cancelled")

    def update_lineup(self, game_id: str, side: Side, lineup: Sequence[LineupEntry]) -> Game:
        game = scoring.update_lineup(self._store.get_game(game_id), side, lineup)
        return self._commit(game, "lineup")

    def set_lineups(self, game_id: str, lineups: Lineups) -> Game:
        game = self._store.get_game(game_id)
        for side in (Side.AWAY, Side.HOME):
            game = scoring.update_lineup(game, side, lineups.for_side(side))
        return self._commit(game, "lineup")

    # -- recording ---------------------------------------------------------

    def record_at_bat(self, game_id: str,
                      at_bat: AtBatInput | Mapping[str, Any]) -> scoring.ScoringResult:
        result = scoring.record_at_bat(self._store.get_game(game_id), at_bat)
        if result.valid:
            result.game = self._commit(result.game, "at_bat", event=result.event)
            logger.debug("Game %s: %s", game_id,
                         result.game.score_details.game_state.situation_display())
        return result

    def record_pitch(self, game_id: str, pitch: Pitch | str) -> scoring.ScoringResult:
        result = scoring.record_pitch(self._store.get_game(game_id), pitch)
        if result.valid:
            kind = "at_bat" if result.event is not None else "pitch"
            result.game = self._commit(result.game, kind, event=result.event)
        return result

    def correct_at_bat(self, game_id: str, event_id: str,
                       reason: str = "") -> scoring.ScoringResult:
        result = scoring.correct_at_bat(self._store.get_game(game_id), event_id, reason)
        if result.valid:
            result.game = self._commit(result.game, "correction", correction=result.correction)
        return result

    # -- projections -------------------------------------------------------

    def box_score(self, game_id: str) -> BoxScore:
        return build_box_score(self._store.get_game(game_id))

    def summary(self, game_id: str) -> GameSummary:
        return build_game_summary(self._store.get_game(game_id))
