# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest"]
# ///
"""Tests for the lineup manager.

Covers:
1. Adding roster and untracked players at the next order slot
2. Removing players with dense renumbering
3. Moving players up and down, with no-ops at the boundaries
4. Order values staying exactly 1..n after any sequence of operations
5. Next-batter rotation with wrap-around and inactive entries
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lineup import (
    add_generic_player,
    add_player,
    build_lineup,
    find_entry,
    first_pitcher_id,
    is_dense,
    move_player,
    next_batter_id,
    remove_player,
    renumber,
    set_status,
)
from models import (
    AdHocLineupEntry,
    LineupStatus,
    Position,
    RosterLineupEntry,
    RosterPlayer,
    ScoringValidationError,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_player(n: int, *positions: Position) -> RosterPlayer:
    return RosterPlayer(id=f"p{n}", name=f"Player {n}", jersey_number=str(n),
                        positions=list(positions))


def three_lineup():
    return build_lineup([make_player(1, Position.CATCHER), make_player(2),
                         make_player(3, Position.PITCHER)])


def ids(lineup):
    return [e.player_id for e in sorted(lineup, key=lambda e: e.order)]


def orders(lineup):
    return sorted(e.order for e in lineup)


# ===========================================================================
# Adding
# ===========================================================================

class TestAdd:
    def test_add_appends_next_slot(self):
        lineup = add_player([], make_player(1, Position.SHORT_STOP))
        lineup = add_player(lineup, make_player(2))
        assert ids(lineup) == ["p1", "p2"]
        assert orders(lineup) == [1, 2]
        assert lineup[0].position is Position.SHORT_STOP
        assert isinstance(lineup[0], RosterLineupEntry)

    def test_position_defaults(self):
        lineup = add_player([], make_player(1))
        assert lineup[0].position is Position.DESIGNATED_HITTER
        lineup = add_player(lineup, make_player(2, Position.LEFT_FIELD), Position.CATCHER)
        assert lineup[1].position is Position.CATCHER

    def test_duplicate_player_rejected(self):
        lineup = three_lineup()
        with pytest.raises(ScoringValidationError):
            add_player(lineup, make_player(2))

    def test_input_not_modified(self):
        lineup = three_lineup()
        add_player(lineup, make_player(4))
        assert len(lineup) == 3

    def test_generic_player(self):
        lineup = add_generic_player(three_lineup(), "21", Position.CENTER_FIELD)
        entry = lineup[-1]
        assert isinstance(entry, AdHocLineupEntry)
        assert entry.kind == "adHoc"
        assert entry.name == "Player #21"
        assert entry.order == 4
        assert len(entry.player_id) == 32

    def test_generic_player_ids_unique(self):
        lineup = add_generic_player([], "1", Position.PITCHER)
        lineup = add_generic_player(lineup, "1", Position.CATCHER, name="Backup")
        assert lineup[0].player_id != lineup[1].player_id
        assert lineup[1].name == "Backup"

    def test_generic_player_needs_jersey(self):
        with pytest.raises(ScoringValidationError):
            add_generic_player([], "", Position.PITCHER)


# ===========================================================================
# Removing and moving
# ===========================================================================

class TestRemove:
    def test_remove_middle_renumbers(self):
        lineup = remove_player(three_lineup(), "p2")
        assert ids(lineup) == ["p1", "p3"]
        assert orders(lineup) == [1, 2]

    def test_remove_unknown_is_noop(self):
        lineup = remove_player(three_lineup(), "nobody")
        assert ids(lineup) == ["p1", "p2", "p3"]

    def test_remove_last_player(self):
        assert remove_player(add_player([], make_player(1)), "p1") == []


class TestMove:
    def test_move_up(self):
        lineup = move_player(three_lineup(), "p3", "up")
        assert ids(lineup) == ["p1", "p3", "p2"]
        assert orders(lineup) == [1, 2, 3]

    def test_move_down(self):
        lineup = move_player(three_lineup(), "p1", "down")
        assert ids(lineup) == ["p2", "p1", "p3"]

    def test_boundaries_are_noops(self):
        assert ids(move_player(three_lineup(), "p1", "up")) == ["p1", "p2", "p3"]
        assert ids(move_player(three_lineup(), "p3", "down")) == ["p1", "p2", "p3"]

    def test_bad_direction(self):
        with pytest.raises(ScoringValidationError):
            move_player(three_lineup(), "p1", "sideways")


def test_orders_stay_dense_after_mixed_operations():
    lineup = three_lineup()
    lineup = add_player(lineup, make_player(4))
    lineup = move_player(lineup, "p4", "up")
    lineup = remove_player(lineup, "p1")
    lineup = add_generic_player(lineup, "9", Position.RIGHT_FIELD)
    lineup = move_player(lineup, "p2", "down")
    lineup = remove_player(lineup, "p3")
    assert is_dense(lineup)
    assert orders(lineup) == list(range(1, len(lineup) + 1))


def test_renumber_closes_gaps():
    lineup = [
        RosterLineupEntry(player_id="b", name="B", position=Position.CATCHER, order=5),
        RosterLineupEntry(player_id="a", name="A", position=Position.PITCHER, order=2),
    ]
    assert not is_dense(lineup)
    fixed = renumber(lineup)
    assert ids(fixed) == ["a", "b"]
    assert is_dense(fixed)


# ===========================================================================
# Rotation
# ===========================================================================

class TestNextBatter:
    def test_advances_in_order(self):
        assert next_batter_id(three_lineup(), "p1") == "p2"

    def test_wraps_to_leadoff(self):
        assert next_batter_id(three_lineup(), "p3") == "p1"

    def test_unknown_or_missing_current(self):
        assert next_batter_id(three_lineup()) == "p1"
        assert next_batter_id(three_lineup(), "nobody") == "p1"

    def test_empty_lineup(self):
        assert next_batter_id([], "p1") is None

    def test_skips_inactive(self):
        lineup = set_status(three_lineup(), "p2", LineupStatus.INACTIVE)
        assert next_batter_id(lineup, "p1") == "p3"
        assert find_entry(lineup, "p2").status is LineupStatus.INACTIVE

    def test_all_inactive(self):
        lineup = three_lineup()
        for pid in ("p1", "p2", "p3"):
            lineup = set_status(lineup, pid, LineupStatus.INACTIVE)
        assert next_batter_id(lineup, "p1") is None

    def test_set_status_unknown_player(self):
        with pytest.raises(ScoringValidationError):
            set_status(three_lineup(), "nobody", LineupStatus.INACTIVE)


def test_first_pitcher():
    assert first_pitcher_id(three_lineup()) == "p3"
    assert first_pitcher_id([]) is None
