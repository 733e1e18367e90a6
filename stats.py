# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Derived game statistics.

``aggregate`` is a pure function of the at-bat log: the same events always
produce the same player lines and inning scores, and nothing outside the
returned value is touched.  Lineups are optional and only used for display
names, positions and the home/away grouping of players.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from event_log import effective_events
from models import (
    HIT_BASES,
    NON_AT_BAT_RESULTS,
    PLATE_APPEARANCE_RESULTS,
    AtBatEvent,
    AtBatResult,
    ConsistencyError,
    Correction,
    Half,
    InningScore,
    Lineups,
    PlayerGameStats,
    Score,
    Side,
)

logger = logging.getLogger(__name__)

_HIT_FIELDS = {
    AtBatResult.SINGLE: "singles",
    AtBatResult.DOUBLE: "doubles",
    AtBatResult.TRIPLE: "triples",
    AtBatResult.HOMERUN: "homeruns",
}

_COUNTING_FIELDS = (
    "at_bats", "hits", "singles", "doubles", "triples", "homeruns",
    "runs", "rbi", "walks", "strikeouts", "errors",
)


# ---------------------------------------------------------------------------
# Ratios
# ---------------------------------------------------------------------------

def batting_average(hits: int, at_bats: int) -> str:
    """Format a batting average the way box scores print it.

    ``.000`` when there are no at-bats, ``.250`` for 1-for-4, ``1.000`` for a
    perfect day.
    """
    if at_bats <= 0:
        return ".000"
    text = f"{hits / at_bats:.3f}"
    return text[1:] if text.startswith("0") else text


def player_average(stats: PlayerGameStats) -> str:
    return batting_average(stats.hits, stats.at_bats)


# ---------------------------------------------------------------------------
# Aggregate result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameAggregate:
    """Everything derived from one game's log."""
    player_stats: list[PlayerGameStats] = field(default_factory=list)
    inning_scores: list[InningScore] = field(default_factory=list)
    side_players: dict[Side, list[str]] = field(default_factory=dict)
    issues: list[ConsistencyError] = field(default_factory=list)

    def stats_for(self, player_id: str) -> Optional[PlayerGameStats]:
        for stats in self.player_stats:
            if stats.player_id == player_id:
                return stats
        return None

    def stats_for_side(self, side: Side) -> list[PlayerGameStats]:
        ids = self.side_players.get(side, [])
        return [s for s in self.player_stats if s.player_id in ids]

    @property
    def total(self) -> Score:
        return total_score(self.inning_scores)


def total_score(inning_scores: Iterable[InningScore]) -> Score:
    team = opponent = 0
    for inning in inning_scores:
        team += inning.team
        opponent += inning.opponent
    return Score(team=team, opponent=opponent)


def batting_side(half: Half) -> Side:
    return Side.AWAY if half is Half.TOP else Side.HOME


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _lineup_lookup(lineups: Lineups | None) -> dict[str, tuple[str, str]]:
    """player_id -> (name, position) for every lineup entry."""
    lookup: dict[str, tuple[str, str]] = {}
    if lineups is None:
        return lookup
    for side in (Side.AWAY, Side.HOME):
        for entry in lineups.for_side(side):
            lookup[entry.player_id] = (entry.name, entry.position.value)
    return lookup


def aggregate(
    events: Iterable[AtBatEvent],
    *,
    lineups: Lineups | None = None,
    is_home_team: bool = False,
    corrections: Iterable[Correction] = (),
    innings: int | None = None,
) -> GameAggregate:
    """Derive player lines and inning scores from an at-bat log.

    Args:
        events: The game's events in log order.
        lineups: Optional lineups, for names, positions and side grouping.
        is_home_team: Whether the scoring team bats in the bottom half.
            Decides which side's runs land in ``InningScore.team``.
        corrections: Corrections whose target events are skipped.
        innings: Minimum number of inning rows to return.

    Returns:
        A :class:`GameAggregate`.  Players referenced by the log but missing
        from both lineups keep their stat lines and are reported in
        ``issues`` instead of being grouped with a side.
    """
    effective = effective_events(events, corrections)
    from_lineup = _lineup_lookup(lineups)

    tallies: dict[str, dict[str, int]] = {}
    names: dict[str, str] = {}
    runs_by_inning: dict[int, dict[Side, int]] = defaultdict(lambda: {Side.HOME: 0, Side.AWAY: 0})

    def line(player_id: str, name: str = "") -> dict[str, int]:
        if player_id not in tallies:
            tallies[player_id] = dict.fromkeys(_COUNTING_FIELDS, 0)
        if name:
            names[player_id] = name
        return tallies[player_id]

    for event in effective:
        side = batting_side(event.half)
        runs_by_inning[event.inning][side] += len(event.runners_scored)

        if event.result in PLATE_APPEARANCE_RESULTS:
            batter = line(event.player_id, event.player_name)
            if event.result not in NON_AT_BAT_RESULTS:
                batter["at_bats"] += 1
            if event.result in HIT_BASES:
                batter["hits"] += 1
                batter[_HIT_FIELDS[event.result]] += 1
            elif event.result in (AtBatResult.WALK, AtBatResult.HIT_BY_PITCH):
                batter["walks"] += 1
            elif event.result is AtBatResult.STRIKEOUT:
                batter["strikeouts"] += 1
            batter["rbi"] += event.rbi

        for runner_id in event.runners_scored:
            line(runner_id)["runs"] += 1

        if event.errors:
            if event.fielder_id:
                line(event.fielder_id)["errors"] += event.errors
            else:
                line(event.pitcher_id, event.pitcher_name)["errors"] += event.errors

    player_stats = []
    for player_id, counts in tallies.items():
        lineup_name, position = from_lineup.get(player_id, ("", None))
        player_stats.append(PlayerGameStats(
            player_id=player_id,
            player_name=lineup_name or names.get(player_id, player_id),
            position=position,
            **counts,
        ))

    team_side = Side.HOME if is_home_team else Side.AWAY
    last_inning = max([innings or 0, *runs_by_inning.keys()])
    inning_scores = []
    for inning in range(1, last_inning + 1):
        runs = runs_by_inning.get(inning, {Side.HOME: 0, Side.AWAY: 0})
        inning_scores.append(InningScore(team=runs[team_side], opponent=runs[team_side.other]))

    side_players: dict[Side, list[str]] = {}
    issues: list[ConsistencyError] = []
    if lineups is not None:
        side_players = {Side.HOME: [], Side.AWAY: []}
        for stats in player_stats:
            side = lineups.side_of(stats.player_id)
            if side is None:
                issues.append(ConsistencyError(
                    f"Player {stats.player_id} appears in the log but in neither lineup",
                    player_id=stats.player_id,
                ))
                logger.warning("Player %s is not in either lineup; excluded from team totals",
                               stats.player_id)
                continue
            side_players[side].append(stats.player_id)

    return GameAggregate(
        player_stats=player_stats,
        inning_scores=inning_scores,
        side_players=side_players,
        issues=issues,
    )


def stats_for_player(events: Iterable[AtBatEvent], player_id: str,
                     corrections: Iterable[Correction] = ()) -> PlayerGameStats:
    """One player's line, zeroed when the log never mentions them."""
    found = aggregate(events, corrections=corrections).stats_for(player_id)
    return found or PlayerGameStats(player_id=player_id, player_name=player_id)


def sum_stats(stats: Iterable[PlayerGameStats]) -> dict[str, int]:
    totals = dict.fromkeys(_COUNTING_FIELDS, 0)
    for line in stats:
        for name in _COUNTING_FIELDS:
            totals[name] += getattr(line, name)
    return totals
