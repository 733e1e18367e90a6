# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest"]
# ///
"""Tests for the box score and game summary projections.

Covers:
1. Batting lines split by lineup membership, in batting order
2. Side totals, line score and errors
3. Summary result (win / loss / tie) and duration
4. Graceful output for empty games and players outside both lineups
5. Plain-text rendering and the command-line entry point
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from box_score import (
    build_box_score,
    build_game_summary,
    format_box_score,
    format_duration,
    format_game_summary,
    main,
)
from models import GameOutcome, Lineups, Position, RosterLineupEntry, Side
from scoring import end_game, new_game, record_at_bat, start_game


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_lineup(prefix: str, size: int = 3):
    return [
        RosterLineupEntry(
            player_id=f"{prefix}{i}", name=f"{prefix.upper()}{i} Player",
            position=Position.PITCHER if i == size else Position.SHORT_STOP,
            order=i,
        )
        for i in range(1, size + 1)
    ]


def started_game():
    """Hawks (home) host the Owls (away), three batters a side."""
    game = new_game(
        "g1", team_name="Hawks", opponent="Owls", is_home_team=True,
        lineups=Lineups(home=make_lineup("h"), away=make_lineup("a")),
    )
    return start_game(game)


def record(game, result: str, **fields):
    outcome = record_at_bat(game, {"result": result, **fields})
    assert outcome.valid, outcome.error
    return outcome.game


def played_game():
    """Owls score 2 in the top of the 1st, Hawks answer with 3."""
    game = started_game()
    for result in ("single", "homerun", "strikeout", "strikeout", "strikeout"):
        game = record(game, result)
    for result in ("double", "single", "homerun"):
        game = record(game, result)
    return end_game(game)


# ===========================================================================
# Box score
# ===========================================================================

class TestBoxScore:
    def test_lines_follow_lineup(self):
        box = build_box_score(played_game())
        assert box.team.name == "Hawks"
        assert box.team.side is Side.HOME
        assert [line.player_id for line in box.team.lines] == ["h1", "h2", "h3"]
        assert [line.player_id for line in box.opponent.lines] == ["a1", "a2", "a3"]
        assert box.team.lines[0].position == "SS"
        assert box.team.lines[2].position == "P"

    def test_player_lines(self):
        box = build_box_score(played_game())
        h3 = box.team.lines[2]
        assert (h3.at_bats, h3.hits, h3.runs, h3.rbi, h3.homeruns) == (1, 1, 1, 3, 1)
        a1 = box.opponent.lines[0]
        assert (a1.at_bats, a1.hits, a1.runs, a1.strikeouts) == (2, 1, 1, 1)
        assert a1.average == ".500"

    def test_totals(self):
        box = build_box_score(played_game())
        team = box.team.totals
        assert (team.at_bats, team.runs, team.hits, team.rbi, team.doubles) == (3, 3, 3, 3, 1)
        assert team.average == "1.000"
        opp = box.opponent.totals
        assert (opp.at_bats, opp.hits, opp.runs, opp.rbi, opp.strikeouts) == (5, 2, 2, 2, 3)
        assert opp.homeruns == 1
        assert opp.average == ".400"

    def test_line_score(self):
        box = build_box_score(played_game())
        assert box.innings == 1
        assert box.team.line_score == [3]
        assert box.opponent.line_score == [2]
        assert (box.team.runs, box.opponent.runs) == (3, 2)

    def test_errors_counted_for_fielding_side(self):
        game = record(record(started_game(), "single"), "error")
        box = build_box_score(game)
        assert box.team.totals.errors == 1
        assert box.opponent.totals.errors == 0

    def test_unassigned_players(self):
        game = record(started_game(), "single", player_id="x7", player_name="Sub")
        box = build_box_score(game)
        assert [line.player_id for line in box.unassigned] == ["x7"]
        assert box.unassigned[0].name == "Sub"
        assert box.opponent.totals.hits == 0

    def test_empty_game(self):
        box = build_box_score(new_game("g0"))
        assert box.innings == 0
        assert box.team.lines == []
        assert box.team.totals.at_bats == 0
        assert box.opponent.totals.average == ".000"
        assert box.team.name == "Team"


# ===========================================================================
# Summary
# ===========================================================================

class TestSummary:
    def test_win(self):
        summary = build_game_summary(played_game())
        assert (summary.team_score, summary.opponent_score) == (3, 2)
        assert summary.outcome is GameOutcome.WIN
        assert summary.result_text == "Hawks won"
        assert summary.team_totals.hits == 3
        assert summary.opponent_totals.strikeouts == 3

    def test_loss(self):
        game = record(started_game(), "homerun")
        summary = build_game_summary(game)
        assert summary.outcome is GameOutcome.LOSS
        assert summary.result_text == "Owls won"

    def test_tie_when_nothing_recorded(self):
        summary = build_game_summary(new_game("g0", team_name="Hawks", opponent="Owls"))
        assert summary.outcome is GameOutcome.TIE
        assert summary.result_text == "Game tied"
        assert summary.duration is None

    def test_duration_between_first_and_last_at_bat(self):
        start = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
        game = record(started_game(), "single", timestamp=start.isoformat())
        game = record(game, "flyOut", timestamp=(start + timedelta(minutes=30)).isoformat())
        game = record(game, "flyOut", timestamp=(start + timedelta(minutes=65)).isoformat())
        summary = build_game_summary(game)
        assert summary.duration == timedelta(minutes=65)
        assert format_duration(summary.duration) == "1h 5m"

    def test_naive_timestamp_read_as_utc(self):
        game = record(started_game(), "single", timestamp="2024-05-01T10:00:00")
        game = record(game, "flyOut")
        first = game.score_details.at_bats[0].timestamp
        assert first == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        summary = build_game_summary(game)
        assert summary.duration is not None
        assert summary.duration > timedelta(0)


def test_format_duration():
    assert format_duration(None) == "N/A"
    assert format_duration(timedelta(minutes=42, seconds=59)) == "42m"
    assert format_duration(timedelta(hours=2)) == "2h 0m"


# ===========================================================================
# Rendering
# ===========================================================================

def test_format_box_score():
    text = format_box_score(build_box_score(played_game()))
    assert "FINAL BOX SCORE" in text
    assert "Hawks Batting:" in text
    assert "Team Totals" in text
    # Visitors first in the line score.
    assert text.index("Owls") < text.index("Hawks")
    print("  test_format_box_score: PASSED")


def test_format_empty_box_score():
    text = format_box_score(build_box_score(new_game("g0")))
    assert "No player statistics available" in text


def test_format_game_summary():
    text = format_game_summary(build_game_summary(played_game()))
    assert "Hawks 3, Owls 2" in text
    assert "Final: Hawks won" in text
    assert "AVG 1.000" in text


class TestCli:
    def test_prints_box_score(self, tmp_path, capsys):
        path = tmp_path / "g1.json"
        path.write_text(json.dumps(played_game().to_document()))
        assert main([str(path)]) == 0
        assert "FINAL BOX SCORE" in capsys.readouterr().out

    def test_prints_summary(self, tmp_path, capsys):
        path = tmp_path / "g1.json"
        path.write_text(json.dumps(played_game().to_document()))
        assert main([str(path), "--summary"]) == 0
        assert "Game Summary" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_document(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"status": "unknown"}))
        assert main([str(path)]) == 1
