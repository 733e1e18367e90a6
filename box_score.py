# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Read-only box score and game summary projections.

Both projections are built from a :class:`~models.Game` as stored: the
lineups and the derived ``score_details``.  Missing lineups, an empty log or
a game that never started give zeroed output rather than an error.

Usage:
    python -m box_score data/games/<game-id>.json
    python -m box_score data/games/<game-id>.json --summary
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

from pydantic import Field, ValidationError

from event_log import effective_events
from lineup import ordered
from models import (
    POSITION_ABBREVIATIONS,
    Game,
    GameOutcome,
    GameStatus,
    LineupEntry,
    PlayerGameStats,
    Position,
    ScoreModel,
    Side,
)
from stats import batting_average, total_score

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Projection models
# ---------------------------------------------------------------------------

class BattingLine(ScoreModel):
    player_id: str
    name: str
    position: str = "-"
    order: Optional[int] = None
    at_bats: int = 0
    runs: int = 0
    hits: int = 0
    doubles: int = 0
    triples: int = 0
    homeruns: int = 0
    rbi: int = 0
    walks: int = 0
    strikeouts: int = 0
    errors: int = 0
    average: str = ".000"


class BattingTotals(ScoreModel):
    at_bats: int = 0
    runs: int = 0
    hits: int = 0
    doubles: int = 0
    triples: int = 0
    homeruns: int = 0
    rbi: int = 0
    walks: int = 0
    strikeouts: int = 0
    errors: int = 0
    average: str = ".000"


class SideBox(ScoreModel):
    name: str
    side: Side
    lines: list[BattingLine] = Field(default_factory=list)
    totals: BattingTotals = Field(default_factory=BattingTotals)
    line_score: list[int] = Field(default_factory=list)
    runs: int = 0


class BoxScore(ScoreModel):
    game_id: str
    status: GameStatus
    innings: int = 0
    team: SideBox
    opponent: SideBox
    # Players in the log but in neither lineup.
    unassigned: list[BattingLine] = Field(default_factory=list)


class GameSummary(ScoreModel):
    game_id: str
    status: GameStatus
    team_name: str
    opponent: str
    team_score: int = 0
    opponent_score: int = 0
    outcome: GameOutcome
    result_text: str
    duration: Optional[timedelta] = None
    team_totals: BattingTotals = Field(default_factory=BattingTotals)
    opponent_totals: BattingTotals = Field(default_factory=BattingTotals)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _abbreviation(position: str | None) -> str:
    if not position:
        return "-"
    try:
        return POSITION_ABBREVIATIONS[Position(position)]
    except ValueError:
        return position


def _line(stats: PlayerGameStats | None, player_id: str, name: str = "",
          position: str | None = None, order: int | None = None) -> BattingLine:
    if stats is None:
        return BattingLine(player_id=player_id, name=name or player_id,
                           position=_abbreviation(position), order=order)
    return BattingLine(
        player_id=player_id,
        name=name or stats.player_name or player_id,
        position=_abbreviation(position or stats.position),
        order=order,
        at_bats=stats.at_bats,
        runs=stats.runs,
        hits=stats.hits,
        doubles=stats.doubles,
        triples=stats.triples,
        homeruns=stats.homeruns,
        rbi=stats.rbi,
        walks=stats.walks,
        strikeouts=stats.strikeouts,
        errors=stats.errors,
        average=batting_average(stats.hits, stats.at_bats),
    )


def _totals(lines: Sequence[BattingLine]) -> BattingTotals:
    fields = ("at_bats", "runs", "hits", "doubles", "triples", "homeruns",
              "rbi", "walks", "strikeouts", "errors")
    sums = {name: sum(getattr(line, name) for line in lines) for name in fields}
    return BattingTotals(**sums, average=batting_average(sums["hits"], sums["at_bats"]))


def _side_lines(lineup: Sequence[LineupEntry],
                stats_by_id: dict[str, PlayerGameStats]) -> list[BattingLine]:
    return [
        _line(stats_by_id.get(e.player_id), e.player_id, e.name, e.position.value, e.order)
        for e in ordered(lineup)
    ]


def _duration(game: Game) -> Optional[timedelta]:
    """Elapsed time between the first and last recorded at-bat."""
    details = game.score_details
    events = effective_events(details.at_bats, details.corrections)
    if not events:
        return None
    return events[-1].timestamp - events[0].timestamp


def format_duration(duration: Optional[timedelta]) -> str:
    if duration is None:
        return "N/A"
    minutes = max(0, int(duration.total_seconds() // 60))
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

def build_box_score(game: Game) -> BoxScore:
    """Batting lines per side in lineup order, with totals and a line score."""
    details = game.score_details
    stats_by_id = {s.player_id: s for s in details.player_stats}

    team_lineup = game.lineups.for_side(game.team_side)
    opponent_lineup = game.lineups.for_side(game.opponent_side)
    team_lines = _side_lines(team_lineup, stats_by_id)
    opponent_lines = _side_lines(opponent_lineup, stats_by_id)

    in_lineup = {e.player_id for e in team_lineup} | {e.player_id for e in opponent_lineup}
    unassigned = [
        _line(stats, stats.player_id) for stats in details.player_stats
        if stats.player_id not in in_lineup
    ]
    if unassigned:
        logger.debug("Box score for %s: %d player(s) outside both lineups",
                     game.id, len(unassigned))

    innings = len(details.inning_scores)
    score = total_score(details.inning_scores)
    return BoxScore(
        game_id=game.id,
        status=game.status,
        innings=innings,
        team=SideBox(
            name=game.team_name or "Team",
            side=game.team_side,
            lines=team_lines,
            totals=_totals(team_lines),
            line_score=[i.team for i in details.inning_scores],
            runs=score.team,
        ),
        opponent=SideBox(
            name=game.opponent or "Opponent",
            side=game.opponent_side,
            lines=opponent_lines,
            totals=_totals(opponent_lines),
            line_score=[i.opponent for i in details.inning_scores],
            runs=score.opponent,
        ),
        unassigned=unassigned,
    )


def build_game_summary(game: Game) -> GameSummary:
    """Final score, result and duration, plus batting totals per side.

    A strictly greater score wins; equal scores are a tie.
    """
    score = total_score(game.score_details.inning_scores)
    team_name = game.team_name or "Team"
    opponent = game.opponent or "Opponent"

    if score.team > score.opponent:
        outcome, result_text = GameOutcome.WIN, f"{team_name} won"
    elif score.opponent > score.team:
        outcome, result_text = GameOutcome.LOSS, f"{opponent} won"
    else:
        outcome, result_text = GameOutcome.TIE, "Game tied"

    box = build_box_score(game)
    return GameSummary(
        game_id=game.id,
        status=game.status,
        team_name=team_name,
        opponent=opponent,
        team_score=score.team,
        opponent_score=score.opponent,
        outcome=outcome,
        result_text=result_text,
        duration=_duration(game),
        team_totals=box.team.totals,
        opponent_totals=box.opponent.totals,
    )


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------

def _batting_table(side: SideBox) -> list[str]:
    lines = [f"\n{side.name} Batting:"]
    lines.append(f"  {'Name':<20} {'Pos':<4} {'AB':>3} {'R':>3} {'H':>3} {'RBI':>4} "
                 f"{'BB':>3} {'SO':>3} {'AVG':>6}")
    lines.append(f"  {'-'*20} {'-'*4} {'-'*3} {'-'*3} {'-'*3} {'-'*4} {'-'*3} {'-'*3} {'-'*6}")
    if not side.lines:
        lines.append("  No player statistics available")
        return lines
    for b in side.lines:
        lines.append(
            f"  {b.name[:20]:<20} {b.position:<4} {b.at_bats:>3} {b.runs:>3} {b.hits:>3} "
            f"{b.rbi:>4} {b.walks:>3} {b.strikeouts:>3} {b.average:>6}"
        )
    t = side.totals
    lines.append(
        f"  {'Team Totals':<20} {'':<4} {t.at_bats:>3} {t.runs:>3} {t.hits:>3} "
        f"{t.rbi:>4} {t.walks:>3} {t.strikeouts:>3} {t.average:>6}"
    )
    extra = [f"{label}: {value}" for label, value in
             (("2B", t.doubles), ("3B", t.triples), ("HR", t.homeruns), ("E", t.errors))
             if value]
    if extra:
        lines.append("  " + ", ".join(extra))
    return lines


def format_box_score(box: BoxScore) -> str:
    """Render a box score as a plain-text table."""
    lines = []
    title = "FINAL BOX SCORE" if box.status is GameStatus.COMPLETED else "BOX SCORE"
    lines.append("=" * 72)
    lines.append(title)
    lines.append("=" * 72)

    header = f"{'Team':<20}"
    for i in range(1, box.innings + 1):
        header += f" {i:>3}"
    header += "  |   R   H   E"
    lines.append(header)
    lines.append("-" * len(header))

    # Visitors are listed first.
    sides = sorted((box.team, box.opponent), key=lambda s: s.side is Side.HOME)
    for side in sides:
        row = f"{side.name[:20]:<20}"
        for runs in side.line_score:
            row += f" {runs:>3}"
        row += f"  | {side.runs:>3} {side.totals.hits:>3} {side.totals.errors:>3}"
        lines.append(row)

    for side in sides:
        lines.extend(_batting_table(side))

    if box.unassigned:
        lines.append("\nNot in either lineup:")
        for b in box.unassigned:
            lines.append(f"  {b.name[:20]:<20} {b.at_bats:>3} AB {b.hits:>3} H {b.runs:>3} R")

    return "\n".join(lines)


def format_game_summary(summary: GameSummary) -> str:
    """Render a game summary as plain text."""
    lines = [
        "Game Summary",
        f"  {summary.team_name} {summary.team_score}, "
        f"{summary.opponent} {summary.opponent_score}",
        f"  Final: {summary.result_text}",
        f"  Duration: {format_duration(summary.duration)}",
    ]
    for name, totals in ((summary.team_name, summary.team_totals),
                         (summary.opponent, summary.opponent_totals)):
        lines.append(
            f"  {name}: {totals.hits} H, {totals.runs} R, {totals.rbi} RBI, "
            f"{totals.walks} BB, {totals.strikeouts} SO, {totals.errors} E, "
            f"AVG {totals.average}"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    from config import configure_logging

    parser = argparse.ArgumentParser(
        description="Print the box score or summary for a stored game."
    )
    parser.add_argument("path", type=Path, help="Path to a game JSON document.")
    parser.add_argument(
        "--summary", action="store_true",
        help="Print the game summary instead of the box score.",
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        game = Game.model_validate_json(args.path.read_text())
    except OSError as e:
        print(f"Error reading {args.path}: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Error: {args.path} is not a valid game document: {e}", file=sys.stderr)
        return 1

    if args.summary:
        print(format_game_summary(build_game_summary(game)))
    else:
        print(format_box_score(build_box_score(game)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
