# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Game persistence.

A store holds one document per game: lineups, the at-bat log, corrections,
the live state and the derived score details, all in a single record.
Writing the whole document at once means an event and the state it produced
are never persisted separately.

Usage::

    from game_store import JsonGameStore

    store = JsonGameStore()                  # uses SCOREKEEPER_DATA_DIR
    store = JsonGameStore("/tmp/games")      # custom directory

    store.create_game(game)
    game = store.get_game(game.id)
    store.save_game(updated)
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from event_log import EventLog
from models import AtBatEvent, Game, GameNotFoundError, GameState, StoreError, utc_now

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[A-Za-z0-9_.-]+")


# ---------------------------------------------------------------------------
# Collaborator contract
# ---------------------------------------------------------------------------

class GameStore(Protocol):
    """What the scorekeeper needs from persistence."""

    def create_game(self, game: Game) -> Game: ...

    def get_game(self, game_id: str) -> Game: ...

    def save_game(self, game: Game) -> Game: ...

    def append_at_bat(self, game_id: str, event: AtBatEvent, state: GameState) -> Game: ...

    def read_event_log(self, game_id: str) -> EventLog: ...


def _with_event(game: Game, event: AtBatEvent, state: GameState) -> Game:
    """Append *event* and set *state* without touching derived details."""
    log = EventLog.from_details(game.id, game.score_details).append(event)
    details = game.score_details.model_copy(update={
        "at_bats": list(log.events),
        "game_state": state,
    })
    return game.model_copy(update={"score_details": details, "updated_at": utc_now()})


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryGameStore:
    """Dict-backed store for tests and single-process hosts.

    Games are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._games: dict[str, Game] = {}

    def create_game(self, game: Game) -> Game:
        if game.id in self._games:
            raise StoreError(f"Game {game.id} already exists", field="id")
        self._games[game.id] = game.model_copy(deep=True)
        return game

    def get_game(self, game_id: str) -> Game:
        try:
            return self._games[game_id].model_copy(deep=True)
        except KeyError:
            raise GameNotFoundError(game_id) from None

    def save_game(self, game: Game) -> Game:
        if game.id not in self._games:
            raise GameNotFoundError(game.id)
        self._games[game.id] = game.model_copy(deep=True)
        return game

    def append_at_bat(self, game_id: str, event: AtBatEvent, state: GameState) -> Game:
        return self.save_game(_with_event(self.get_game(game_id), event, state))

    def read_event_log(self, game_id: str) -> EventLog:
        game = self.get_game(game_id)
        return EventLog.from_details(game.id, game.score_details)

    def list_games(self) -> list[str]:
        return sorted(self._games)

    def delete_game(self, game_id: str) -> bool:
        return self._games.pop(game_id, None) is not None


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------

class JsonGameStore:
    """One JSON document per game, written atomically.

    Each game lives at ``<root_dir>/<game_id>.json`` with camelCase keys.
    Writes go to a temporary file that is then renamed over the target.

    Args:
        root_dir: Directory holding the documents.  Created on first write.
            Defaults to :func:`config.get_data_dir`.
    """

    def __init__(self, root_dir: str | Path | None = None) -> None:
        if root_dir is None:
            from config import get_data_dir
            root_dir = get_data_dir()
        self._root = Path(root_dir)

    # -- public API --------------------------------------------------------

    @property
    def root_dir(self) -> Path:
        return self._root

    def create_game(self, game: Game) -> Game:
        path = self._path_for(game.id)
        if path.exists():
            raise StoreError(f"Game {game.id} already exists", field="id")
        self._write(path, game)
        logger.info("Created game %s at %s", game.id, path)
        return game

    def get_game(self, game_id: str) -> Game:
        """Load a game document.

        Raises:
            GameNotFoundError: If no document exists for *game_id*.
            StoreError: If the document is unreadable or fails validation.
        """
        path = self._path_for(game_id)
        if not path.exists():
            raise GameNotFoundError(game_id)
        try:
            return Game.model_validate_json(path.read_text())
        except OSError as e:
            logger.error("Failed to read %s: %s", path, e)
            raise StoreError(f"Cannot read game {game_id}: {e}") from e
        except ValidationError as e:
            logger.error("Game document %s is invalid: %s", path, e)
            raise StoreError(
                f"Game {game_id} is not a valid game document",
                details=[f"{err.get('loc', '?')}: {err.get('msg', '?')}" for err in e.errors()],
            ) from e

    def save_game(self, game: Game) -> Game:
        path = self._path_for(game.id)
        if not path.exists():
            raise GameNotFoundError(game.id)
        self._write(path, game)
        return game

    def append_at_bat(self, game_id: str, event: AtBatEvent, state: GameState) -> Game:
        return self.save_game(_with_event(self.get_game(game_id), event, state))

    def read_event_log(self, game_id: str) -> EventLog:
        game = self.get_game(game_id)
        return EventLog.from_details(game.id, game.score_details)

    def list_games(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(p.stem for p in self._root.glob("*.json"))

    def delete_game(self, game_id: str) -> bool:
        path = self._path_for(game_id)
        if path.exists():
            path.unlink()
            return True
        return False

    # -- internals ---------------------------------------------------------

    def _path_for(self, game_id: str) -> Path:
        if not _SAFE_ID.fullmatch(game_id or ""):
            raise StoreError(f"Invalid game id {game_id!r}", field="id")
        return self._root / f"{game_id}.json"

    def _write(self, path: Path, game: Game) -> None:
        tmp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(game.to_document(), f, indent=2)
            tmp_path.replace(path)  # atomic rename
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            logger.error("Failed to write %s: %s", path, e)
            raise StoreError(f"Cannot write game {game.id}: {e}") from e
