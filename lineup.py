# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Batting lineup management.

A lineup is a list of entries for one side, ordered 1..n.  Every operation
returns a new list and leaves its input untouched.  After any operation the
``order`` values are exactly ``{1..n}``.

Roster-backed and ad-hoc (untracked opponent) entries share one shape, so
nothing downstream needs to tell them apart except through ``kind``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Literal, Optional, Sequence

from models import (
    AdHocLineupEntry,
    LineupEntry,
    LineupStatus,
    Position,
    RosterLineupEntry,
    RosterPlayer,
    ScoringValidationError,
)

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def ordered(lineup: Sequence[LineupEntry]) -> list[LineupEntry]:
    """Return the entries sorted by batting order."""
    return sorted(lineup, key=lambda e: e.order)


def find_entry(lineup: Sequence[LineupEntry], player_id: str) -> Optional[LineupEntry]:
    for entry in lineup:
        if entry.player_id == player_id:
            return entry
    return None


def renumber(lineup: Sequence[LineupEntry]) -> list[LineupEntry]:
    """Densely renumber entries 1..n, keeping their relative order."""
    return [
        entry if entry.order == i else entry.model_copy(update={"order": i})
        for i, entry in enumerate(ordered(lineup), start=1)
    ]


def is_dense(lineup: Sequence[LineupEntry]) -> bool:
    """True when order values are exactly 1..n with no gaps or duplicates."""
    return sorted(e.order for e in lineup) == list(range(1, len(lineup) + 1))


def next_batter_id(lineup: Sequence[LineupEntry],
                   current_id: Optional[str] = None) -> Optional[str]:
    """Return who bats after *current_id*, wrapping from last to first.

    Inactive entries are skipped.  An unknown or missing *current_id* yields
    the first active batter; an empty lineup yields ``None``.
    """
    entries = ordered(lineup)
    active = [e for e in entries if e.status is LineupStatus.ACTIVE]
    if not active:
        return None
    if current_id is None:
        return active[0].player_id

    ids = [e.player_id for e in entries]
    if current_id not in ids:
        return active[0].player_id

    # The current batter may itself be inactive.
    start = ids.index(current_id)
    for step in range(1, len(entries) + 1):
        candidate = entries[(start + step) % len(entries)]
        if candidate.status is LineupStatus.ACTIVE:
            return candidate.player_id
    return None


def first_pitcher_id(lineup: Sequence[LineupEntry]) -> Optional[str]:
    for entry in ordered(lineup):
        if entry.position is Position.PITCHER:
            return entry.player_id
    return None


# ---------------------------------------------------------------------------
# Mutating operations (all return new lists)
# ---------------------------------------------------------------------------

def _ensure_absent(lineup: Sequence[LineupEntry], player_id: str) -> None:
    if find_entry(lineup, player_id) is not None:
        raise ScoringValidationError(
            f"Player {player_id} is already in the lineup", field="player_id"
        )


def add_player(lineup: Sequence[LineupEntry], player: RosterPlayer,
               position: Position | None = None) -> list[LineupEntry]:
    """Append a roster player at the next order slot.

    The position defaults to the player's first listed position, falling
    back to designated hitter.
    """
    _ensure_absent(lineup, player.id)
    if position is None:
        position = player.positions[0] if player.positions else Position.DESIGNATED_HITTER
    base = renumber(lineup)
    entry = RosterLineupEntry(
        player_id=player.id,
        name=player.name,
        jersey_number=player.jersey_number,
        position=position,
        order=len(base) + 1,
    )
    logger.debug("Added %s at order %d", player.name, entry.order)
    return base + [entry]


def add_generic_player(lineup: Sequence[LineupEntry], jersey_number: str,
                       position: Position, name: str | None = None) -> list[LineupEntry]:
    """Append an untracked opposing player with a generated id."""
    if not jersey_number:
        raise ScoringValidationError(
            "An untracked player needs a jersey number", field="jersey_number"
        )
    base = renumber(lineup)
    entry = AdHocLineupEntry(
        player_id=uuid.uuid4().hex,
        name=name or f"Player #{jersey_number}",
        jersey_number=jersey_number,
        position=position,
        order=len(base) + 1,
    )
    return base + [entry]


def remove_player(lineup: Sequence[LineupEntry], player_id: str) -> list[LineupEntry]:
    """Remove an entry and renumber the remainder to 1..n."""
    if find_entry(lineup, player_id) is None:
        logger.debug("remove_player: %s not in lineup", player_id)
    return renumber([e for e in lineup if e.player_id != player_id])


def move_player(lineup: Sequence[LineupEntry], player_id: str,
                direction: Direction) -> list[LineupEntry]:
    """Swap an entry with its neighbour.  A no-op at either boundary."""
    if direction not in ("up", "down"):
        raise ScoringValidationError(
            f"direction must be 'up' or 'down', got {direction!r}", field="direction"
        )
    entries = renumber(lineup)
    ids = [e.player_id for e in entries]
    if player_id not in ids:
        return entries

    i = ids.index(player_id)
    j = i - 1 if direction == "up" else i + 1
    if j < 0 or j >= len(entries):
        return entries

    entries[i], entries[j] = entries[j], entries[i]
    return [e.model_copy(update={"order": n}) for n, e in enumerate(entries, start=1)]


def set_status(lineup: Sequence[LineupEntry], player_id: str,
               status: LineupStatus) -> list[LineupEntry]:
    if find_entry(lineup, player_id) is None:
        raise ScoringValidationError(
            f"Player {player_id} is not in the lineup", field="player_id"
        )
    return renumber([
        e.model_copy(update={"status": status}) if e.player_id == player_id else e
        for e in lineup
    ])


def build_lineup(players: Sequence[RosterPlayer]) -> list[LineupEntry]:
    """Lineup from roster players in the given batting order."""
    lineup: list[LineupEntry] = []
    for player in players:
        lineup = add_player(lineup, player)
    return lineup
