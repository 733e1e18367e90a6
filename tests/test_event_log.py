# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest"]
# ///
"""Tests for the append-only at-bat log."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from event_log import EventLog, effective_events, new_event_id
from models import AtBatEvent, AtBatResult, Half, ScoreDetails, ScoringValidationError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_event(event_id: str, player_id: str = "a1",
               result: AtBatResult = AtBatResult.SINGLE, game_id: str = "g1") -> AtBatEvent:
    return AtBatEvent(
        id=event_id, game_id=game_id, player_id=player_id, inning=1,
        half=Half.TOP, pitcher_id="h9", result=result,
    )


def three_event_log() -> EventLog:
    log = EventLog("g1")
    for event_id, player in (("e1", "a1"), ("e2", "a2"), ("e3", "a1")):
        log = log.append(make_event(event_id, player))
    return log


# ===========================================================================
# Appending
# ===========================================================================

def test_append_preserves_order():
    log = three_event_log()
    assert [e.id for e in log] == ["e1", "e2", "e3"]
    assert len(log) == 3
    assert log.last().id == "e3"


def test_append_returns_new_log():
    log = EventLog("g1")
    longer = log.append(make_event("e1"))
    assert len(log) == 0
    assert len(longer) == 1


def test_append_rejects_duplicate_id():
    with pytest.raises(ScoringValidationError):
        three_event_log().append(make_event("e2"))


def test_append_rejects_other_game():
    with pytest.raises(ScoringValidationError) as exc:
        EventLog("g1").append(make_event("e1", game_id="g2"))
    assert exc.value.field == "game_id"


def test_new_event_ids_are_unique():
    assert len({new_event_id() for _ in range(50)}) == 50


# ===========================================================================
# Corrections
# ===========================================================================

class TestVoid:
    def test_void_keeps_history(self):
        log, correction = three_event_log().void("e2", reason="wrong batter")
        assert correction.corrects_id == "e2"
        assert correction.reason == "wrong batter"
        assert [e.id for e in log.events] == ["e1", "e2", "e3"]
        assert [e.id for e in log.effective()] == ["e1", "e3"]
        assert log.voided_ids == {"e2"}

    def test_void_unknown_event(self):
        with pytest.raises(ScoringValidationError):
            three_event_log().void("e9")

    def test_void_twice(self):
        log, _ = three_event_log().void("e1")
        with pytest.raises(ScoringValidationError):
            log.void("e1")

    def test_for_player_skips_voided(self):
        log, _ = three_event_log().void("e1")
        assert [e.id for e in log.for_player("a1")] == ["e3"]

    def test_last_after_voiding_tail(self):
        log, _ = three_event_log().void("e3")
        assert log.last().id == "e2"


def test_from_details_round_trip():
    log, _ = three_event_log().void("e2")
    details = ScoreDetails(at_bats=list(log.events), corrections=list(log.corrections))
    restored = EventLog.from_details("g1", details)
    assert restored == log
    assert [e.id for e in effective_events(details.at_bats, details.corrections)] == ["e1", "e3"]


def test_empty_log():
    log = EventLog("g1")
    assert log.last() is None
    assert log.effective() == []
    assert log.get("e1") is None
