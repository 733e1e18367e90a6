# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Live game scoring engine.

Applies recorded at-bat results to the in-game state: count, outs, base
occupancy, inning and half.  Advancement follows a fixed per-result rule
table (see :func:`resolve_movement`); plays the table does not describe are
recorded with a manual ``advances`` override.

The engine keeps no state of its own.  :func:`apply_at_bat` maps a state and
an event to the next state; :func:`record_at_bat` wraps it for a whole
:class:`~models.Game`, appending the event to the log and recomputing the
derived score details.  Persisting the returned game is the host's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from event_log import EventLog, new_event_id
from lineup import find_entry, first_pitcher_id, next_batter_id, renumber
from models import (
    HIT_BASES,
    OUT_RESULTS,
    PLATE_APPEARANCE_RESULTS,
    STEAL_RESULTS,
    AtBatEvent,
    AtBatInput,
    AtBatResult,
    Bases,
    Correction,
    Game,
    GameState,
    GameStatus,
    LineupEntry,
    Lineups,
    Pitch,
    RunnerAdvance,
    ScoreDetails,
    ScoringError,
    ScoringValidationError,
    InvalidStateError,
    Side,
    SidePair,
    as_utc,
    utc_now,
)
from stats import aggregate

logger = logging.getLogger(__name__)

# Results that never earn an RBI, whatever scores on them.
_NO_RBI_RESULTS = frozenset({
    AtBatResult.ERROR,
    AtBatResult.STOLEN_BASE,
    AtBatResult.CAUGHT_STEALING,
})


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Transition:
    """Outcome of applying one event to a game state."""
    state: GameState
    runners_scored: tuple[str, ...] = ()
    outs_recorded: int = 0
    default_rbi: int = 0
    half_inning_ended: bool = False


@dataclass
class ScoringResult:
    """Result of a mutating scoring operation.

    On failure ``valid`` is False, ``error`` holds the reason and ``game`` is
    the caller's game, unchanged.
    """
    valid: bool
    game: Game
    event: Optional[AtBatEvent] = None
    correction: Optional[Correction] = None
    runs_scored: int = 0
    error: Optional[ScoringError] = None

    def raise_for_error(self) -> ScoringResult:
        if self.error is not None:
            raise self.error
        return self


# ---------------------------------------------------------------------------
# Runner movement
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Movement:
    bases: dict[int, str]
    scored: tuple[str, ...]
    outs: int


def _force_advance(occupied: dict[int, str], batter_id: str) -> Movement:
    """Batter to first; runners move only when forced."""
    new = dict(occupied)
    scored: list[str] = []
    if 1 in occupied:
        if 2 in occupied:
            if 3 in occupied:
                scored.append(occupied[3])
            new[3] = occupied[2]
        new[2] = occupied[1]
    new[1] = batter_id
    return Movement(new, tuple(scored), 0)


def _advance_all(occupied: dict[int, str], bases: int) -> tuple[dict[int, str], list[str]]:
    """Move every runner *bases* bases, lead runner first."""
    new: dict[int, str] = {}
    scored: list[str] = []
    for base in sorted(occupied, reverse=True):
        dest = base + bases
        if dest >= 4:
            scored.append(occupied[base])
        else:
            new[dest] = occupied[base]
    return new, scored


def _default_batter_end(result: AtBatResult) -> Optional[int]:
    """Where the batter ends up under the rule table; 0 is out, None stays at bat."""
    if result in HIT_BASES:
        return HIT_BASES[result]
    if result in (AtBatResult.WALK, AtBatResult.HIT_BY_PITCH, AtBatResult.ERROR,
                  AtBatResult.FIELDERS_CHOICE):
        return 1
    if result in OUT_RESULTS:
        return 0
    return None


def _rule_movement(bases: Bases, result: AtBatResult, batter_id: str,
                   steal_base: Optional[int]) -> Movement:
    occupied = bases.occupied()

    if result in HIT_BASES:
        n = HIT_BASES[result]
        new, scored = _advance_all(occupied, n)
        if n == 4:
            scored.append(batter_id)
        else:
            new[n] = batter_id
        return Movement(new, tuple(scored), 0)

    if result in (AtBatResult.WALK, AtBatResult.HIT_BY_PITCH):
        return _force_advance(occupied, batter_id)

    if result is AtBatResult.ERROR:
        new, scored = _advance_all(occupied, 1)
        new[1] = batter_id
        return Movement(new, tuple(scored), 0)

    if result is AtBatResult.SACRIFICE:
        new, scored = _advance_all(occupied, 1)
        return Movement(new, tuple(scored), 1)

    if result is AtBatResult.FIELDERS_CHOICE:
        if not occupied:
            return Movement({}, (), 1)
        retired = 1 if 1 in occupied else max(occupied)
        new = {b: pid for b, pid in occupied.items() if b != retired}
        new[1] = batter_id
        return Movement(new, (), 1)

    if result in OUT_RESULTS:
        return Movement(dict(occupied), (), 1)

    if result in STEAL_RESULTS:
        runner = occupied.get(steal_base) if steal_base else None
        if runner is None:
            raise ScoringValidationError(
                f"No runner on base {steal_base} to attempt a steal", field="steal_base"
            )
        new = {b: pid for b, pid in occupied.items() if b != steal_base}
        if result is AtBatResult.CAUGHT_STEALING:
            return Movement(new, (), 1)
        if steal_base == 3:
            return Movement(new, (runner,), 0)
        if steal_base + 1 in new:
            raise ScoringValidationError(
                f"Cannot steal base {steal_base + 1}: it is occupied", field="steal_base"
            )
        new[steal_base + 1] = runner
        return Movement(new, (), 0)

    # foul
    return Movement(dict(occupied), (), 0)


def _override_movement(bases: Bases, result: AtBatResult, batter_id: str,
                       advances: Sequence[RunnerAdvance]) -> Movement:
    occupied = bases.occupied()
    moves: dict[int, int] = {}
    for advance in advances:
        if advance.start_base in moves:
            raise ScoringValidationError(
                f"Base {advance.start_base} has more than one advance", field="advances"
            )
        moves[advance.start_base] = advance.end_base

    for start, end in moves.items():
        if start == 0:
            if result in STEAL_RESULTS:
                raise ScoringValidationError(
                    "A steal cannot move the batter", field="advances"
                )
            continue
        if start not in occupied:
            raise ScoringValidationError(
                f"No runner on base {start} to advance", field="advances"
            )
        if end != 0 and end < start:
            raise ScoringValidationError(
                f"Runner on base {start} cannot move back to base {end}", field="advances"
            )

    new: dict[int, str] = {}
    scored: list[str] = []
    outs = 0

    def place(player_id: str, end: int) -> None:
        nonlocal outs
        if end == 0:
            outs += 1
        elif end == 4:
            scored.append(player_id)
        elif end in new:
            raise ScoringValidationError(
                f"Two runners cannot both end on base {end}", field="advances"
            )
        else:
            new[end] = player_id

    for base in sorted(occupied, reverse=True):
        place(occupied[base], moves.get(base, base))

    batter_end = moves.get(0, _default_batter_end(result))
    if batter_end is not None:
        place(batter_id, batter_end)

    return Movement(new, tuple(scored), outs)


def resolve_movement(bases: Bases, event: AtBatEvent) -> Movement:
    """Where every runner and the batter end up after *event*."""
    if event.advances:
        if event.result is AtBatResult.FOUL:
            raise ScoringValidationError(
                "A foul ball cannot carry runner advances", field="advances"
            )
        return _override_movement(bases, event.result, event.player_id, event.advances)
    return _rule_movement(bases, event.result, event.player_id, event.steal_base)


# ---------------------------------------------------------------------------
# State transition
# ---------------------------------------------------------------------------

def _half_inning_label(inning: int, is_top: bool) -> str:
    return f"{'Top' if is_top else 'Bottom'} of {inning}"


def apply_at_bat(state: GameState, event: AtBatEvent,
                 lineups: Lineups | None = None, *, strict: bool = True) -> Transition:
    """Apply one event to *state* and return the next state.

    The input state is never modified.  With ``strict`` the event must be
    stamped with the state's inning and half; replay passes ``strict=False``
    because a correction may shift later events.

    Raises:
        ScoringValidationError: For an unknown result, a missing batter or
            pitcher, or an impossible runner movement.
    """
    if not isinstance(event.result, AtBatResult):
        raise ScoringValidationError(f"Unknown at-bat result {event.result!r}", field="result")
    if not event.player_id:
        raise ScoringValidationError("At-bat has no batter", field="player_id")
    if not event.pitcher_id:
        raise ScoringValidationError("At-bat has no pitcher", field="pitcher_id")
    if strict and (event.inning != state.current_inning or event.half is not state.half):
        raise ScoringValidationError(
            f"Event is stamped {event.half.value} {event.inning} but the game is in "
            f"{state.half.value} {state.current_inning}",
            field="inning",
        )

    movement = resolve_movement(state.bases, event)
    batting = state.batting_side
    ends_plate_appearance = event.result in PLATE_APPEARANCE_RESULTS

    new = state.model_copy(deep=True)
    due_up = state.due_up
    if ends_plate_appearance:
        lineup: Sequence[LineupEntry] = lineups.for_side(batting) if lineups else []
        slot_id = event.player_id
        if find_entry(lineup, slot_id) is None:
            # A batter outside the lineup bats in the slot that was due up.
            slot_id = state.current_batter_id
            if slot_id is None or find_entry(lineup, slot_id) is None:
                slot_id = state.due_up.get(batting)
        due_up = due_up.with_side(batting, next_batter_id(lineup, slot_id))
        new.balls = new.strikes = new.fouls = 0
    elif event.result is AtBatResult.FOUL:
        new.fouls += 1
        if new.strikes < 2:
            new.strikes += 1
    elif state.current_batter_id is not None:
        due_up = due_up.with_side(batting, state.current_batter_id)
    new.due_up = due_up

    total_outs = state.outs + movement.outs
    scored = movement.scored
    half_over = total_outs >= 3

    if half_over:
        # Runs do not count on a play that makes the third out.
        scored = ()
        new.outs = 0
        new.balls = new.strikes = new.fouls = 0
        new.bases = Bases()
        if state.is_top_half:
            new.is_top_half = False
        else:
            new.is_top_half = True
            new.current_inning = state.current_inning + 1
        new_batting = new.batting_side
        upcoming = due_up.get(new_batting)
        if upcoming is None and lineups is not None:
            upcoming = next_batter_id(lineups.for_side(new_batting))
        new.current_batter_id = upcoming
        new.current_pitcher_id = state.pitchers.get(new.fielding_side) or state.current_pitcher_id
        logger.info("Side retired; %s", _half_inning_label(new.current_inning, new.is_top_half))
    else:
        new.outs = total_outs
        new.bases = Bases.from_occupied(movement.bases)
        if ends_plate_appearance:
            new.current_batter_id = due_up.get(batting)

    default_rbi = 0 if event.result in _NO_RBI_RESULTS else len(scored)
    logger.debug("%s %s: %s, %d run(s), %d out(s) on the play",
                 event.half.value, event.inning, event.result.value,
                 len(scored), movement.outs)

    return Transition(
        state=new,
        runners_scored=tuple(scored),
        outs_recorded=movement.outs,
        default_rbi=default_rbi,
        half_inning_ended=half_over,
    )


def replay_state(opening: GameState, events: Sequence[AtBatEvent],
                 lineups: Lineups | None = None) -> GameState:
    """Rebuild the live state by re-applying *events* from *opening*.

    Pitches thrown in an unfinished at-bat are not part of the log and come
    back as a fresh count.
    """
    state = opening
    for event in events:
        transition = apply_at_bat(state, event, lineups, strict=False)
        if transition.runners_scored != event.runners_scored:
            logger.warning(
                "Replay of event %s scored %s but the log recorded %s",
                event.id, list(transition.runners_scored), list(event.runners_scored),
            )
        state = transition.state
    return state


# ---------------------------------------------------------------------------
# Game-level helpers
# ---------------------------------------------------------------------------

def _require_status(game: Game, allowed: Sequence[GameStatus], action: str) -> None:
    if game.status not in allowed:
        raise InvalidStateError(
            f"Cannot {action}: game {game.id} is {game.status.value}", field="status"
        )


def _with_log(game: Game, log: EventLog, state: GameState, **updates: Any) -> Game:
    """Return *game* carrying *log* and *state*, with derived details recomputed."""
    derived = aggregate(
        log.events,
        lineups=game.lineups,
        is_home_team=game.is_home_team,
        corrections=log.corrections,
        innings=state.current_inning if game.status is not GameStatus.SCHEDULED else None,
    )
    details = ScoreDetails(
        inning_scores=derived.inning_scores,
        player_stats=derived.player_stats,
        at_bats=list(log.events),
        corrections=list(log.corrections),
        game_state=state,
        opening_state=game.score_details.opening_state,
    )
    return game.model_copy(update={
        "score_details": details,
        "score": derived.total,
        "updated_at": utc_now(),
        **updates,
    })


def _log_for(game: Game) -> EventLog:
    return EventLog.from_details(game.id, game.score_details)


def _coerce_input(at_bat: AtBatInput | Mapping[str, Any]) -> AtBatInput:
    if isinstance(at_bat, AtBatInput):
        return at_bat
    try:
        return AtBatInput.model_validate(at_bat)
    except ValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        loc = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ScoringValidationError(
            f"Invalid at-bat: {first.get('msg', 'validation failed')}",
            field=loc,
            details=[f"{e.get('loc', '?')}: {e.get('msg', '?')}" for e in errors],
        ) from exc


def _lineup_name(lineups: Lineups, player_id: str) -> str:
    for side in (Side.AWAY, Side.HOME):
        entry = find_entry(lineups.for_side(side), player_id)
        if entry is not None:
            return entry.name
    return ""


def _build_event(game: Game, state: GameState, at_bat: AtBatInput) -> AtBatEvent:
    player_id = at_bat.player_id
    if at_bat.result in STEAL_RESULTS:
        if at_bat.steal_base is None:
            raise ScoringValidationError("A steal needs the base it started from",
                                         field="steal_base")
        runner = state.bases.runner_on(at_bat.steal_base)
        if player_id is None:
            player_id = runner
        elif runner != player_id:
            raise ScoringValidationError(
                f"Player {player_id} is not on base {at_bat.steal_base}", field="player_id"
            )
    else:
        player_id = player_id or state.current_batter_id
    if not player_id:
        raise ScoringValidationError("No batter given and none is due up", field="player_id")

    pitcher_id = at_bat.pitcher_id or state.current_pitcher_id
    if not pitcher_id:
        raise ScoringValidationError("No pitcher given and none is on the mound",
                                     field="pitcher_id")

    fielding_lineup = game.lineups.for_side(state.fielding_side)
    if at_bat.result not in STEAL_RESULTS and find_entry(fielding_lineup, player_id):
        raise ScoringValidationError(
            f"Player {player_id} is in the fielding side's lineup", field="player_id"
        )

    errors = at_bat.errors
    if errors is None:
        errors = 1 if at_bat.result is AtBatResult.ERROR else 0

    try:
        return AtBatEvent(
            id=new_event_id(),
            game_id=game.id,
            player_id=player_id,
            player_name=at_bat.player_name or _lineup_name(game.lineups, player_id),
            inning=state.current_inning,
            half=state.half,
            pitcher_id=pitcher_id,
            pitcher_name=at_bat.pitcher_name or _lineup_name(game.lineups, pitcher_id),
            balls=state.balls,
            strikes=state.strikes,
            fouls=state.fouls,
            result=at_bat.result,
            rbi=at_bat.rbi or 0,
            errors=errors,
            timestamp=at_bat.timestamp or utc_now(),
            advances=tuple(at_bat.advances),
            steal_base=at_bat.steal_base,
            fielder_id=at_bat.fielder_id,
        )
    except ValidationError as exc:
        raise ScoringValidationError(
            "Invalid at-bat event",
            details=[f"{e.get('loc', '?')}: {e.get('msg', '?')}" for e in exc.errors()],
        ) from exc


# ---------------------------------------------------------------------------
# Game lifecycle
# ---------------------------------------------------------------------------

def new_game(game_id: str, *, team_id: str = "", team_name: str = "", opponent: str = "",
             is_home_team: bool = False, lineups: Lineups | None = None) -> Game:
    """Create a scheduled game."""
    return Game(
        id=game_id,
        team_id=team_id,
        team_name=team_name,
        opponent=opponent,
        is_home_team=is_home_team,
        lineups=lineups or Lineups(),
    )


def opening_state(lineups: Lineups, home_pitcher_id: str | None = None,
                  away_pitcher_id: str | None = None) -> GameState:
    """Inning 1, top half, nobody out, leadoff hitters due up."""
    due_up = SidePair(
        home=next_batter_id(lineups.home),
        away=next_batter_id(lineups.away),
    )
    pitchers = SidePair(
        home=home_pitcher_id or first_pitcher_id(lineups.home),
        away=away_pitcher_id or first_pitcher_id(lineups.away),
    )
    return GameState(
        current_batter_id=due_up.away,
        current_pitcher_id=pitchers.home,
        due_up=due_up,
        pitchers=pitchers,
    )


def start_game(game: Game, *, home_pitcher_id: str | None = None,
               away_pitcher_id: str | None = None,
               started_at: datetime | None = None) -> Game:
    """Scheduled -> in progress.

    Pitchers default to the first lineup entry playing Pitcher on each side.

    Raises:
        InvalidStateError: If the game is not scheduled.
    """
    _require_status(game, (GameStatus.SCHEDULED,), "start the game")
    state = opening_state(game.lineups, home_pitcher_id, away_pitcher_id)
    started = game.model_copy(update={
        "status": GameStatus.IN_PROGRESS,
        "started_at": as_utc(started_at) or utc_now(),
        "score_details": game.score_details.model_copy(update={"opening_state": state}),
    })
    logger.info("Game %s started: %s vs %s", game.id, game.team_name or game.team_id,
                game.opponent)
    return _with_log(started, _log_for(started), state)


def end_game(game: Game, *, ended_at: datetime | None = None) -> Game:
    """In progress -> completed.  The game is never ended automatically.

    Raises:
        InvalidStateError: If the game is not in progress.
    """
    _require_status(game, (GameStatus.IN_PROGRESS,), "end the game")
    ended = _with_log(game, _log_for(game), game.score_details.game_state,
                      status=GameStatus.COMPLETED, ended_at=as_utc(ended_at) or utc_now())
    logger.info("Game %s completed %d-%d", game.id, ended.score.team, ended.score.opponent)
    return ended


def cancel_game(game: Game) -> Game:
    """Scheduled or in progress -> cancelled.

    Raises:
        InvalidStateError: If the game already finished or was cancelled.
    """
    _require_status(game, (GameStatus.SCHEDULED, GameStatus.IN_PROGRESS), "cancel the game")
    logger.info("Game %s cancelled", game.id)
    return game.model_copy(update={"status": GameStatus.CANCELLED, "updated_at": utc_now()})


def update_lineup(game: Game, side: Side, lineup: Sequence[LineupEntry]) -> Game:
    """Replace one side's lineup, keeping the live state pointed at real players.

    Raises:
        InvalidStateError: If the game is completed or cancelled.
    """
    if game.is_terminal:
        raise InvalidStateError(
            f"Cannot change the lineup: game {game.id} is {game.status.value}", field="status"
        )
    entries = renumber(lineup)
    updated = game.model_copy(update={"lineups": game.lineups.with_side(side, entries)})
    if game.status is not GameStatus.IN_PROGRESS:
        return updated.model_copy(update={"updated_at": utc_now()})

    state = game.score_details.game_state.model_copy(deep=True)
    due = state.due_up.get(side)
    if due is None or find_entry(entries, due) is None:
        state.due_up = state.due_up.with_side(side, next_batter_id(entries))
    if state.pitchers.get(side) is None:
        state.pitchers = state.pitchers.with_side(side, first_pitcher_id(entries))
    if side is state.batting_side and (state.current_batter_id is None
                                       or find_entry(entries, state.current_batter_id) is None):
        state.current_batter_id = state.due_up.get(side)
    if side is state.fielding_side and state.current_pitcher_id is None:
        state.current_pitcher_id = state.pitchers.get(side)
    return _with_log(updated, _log_for(updated), state)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------

def record_at_bat(game: Game, at_bat: AtBatInput | Mapping[str, Any]) -> ScoringResult:
    """Record one result against *game* as a single transition.

    The event is stamped with the current inning, half and count, applied to
    the state, appended to the log, and the derived stats are recomputed.
    Nothing is persisted.

    Returns:
        A :class:`ScoringResult`.  On a validation failure or a game that is
        not in progress the result carries the error and the original game.
    """
    try:
        _require_status(game, (GameStatus.IN_PROGRESS,), "record an at-bat")
        request = _coerce_input(at_bat)
        state = game.score_details.game_state
        event = _build_event(game, state, request)
        transition = apply_at_bat(state, event, game.lineups)
        event = event.model_copy(update={
            "runners_scored": transition.runners_scored,
            "rbi": request.rbi if request.rbi is not None else transition.default_rbi,
        })
        log = _log_for(game).append(event)
    except ScoringError as exc:
        logger.warning("Rejected at-bat for game %s: %s", game.id, exc)
        return ScoringResult(valid=False, game=game, error=exc)

    updated = _with_log(game, log, transition.state)
    return ScoringResult(
        valid=True,
        game=updated,
        event=event,
        runs_scored=len(transition.runners_scored),
    )


def record_pitch(game: Game, pitch: Pitch | str) -> ScoringResult:
    """Track the count one pitch at a time.

    A fourth ball records a walk and a third strike records a strikeout.
    Other pitches only change the live count; they are not logged.
    """
    try:
        _require_status(game, (GameStatus.IN_PROGRESS,), "record a pitch")
        pitch = Pitch(pitch)
    except ValueError:
        error = ScoringValidationError(f"Unknown pitch {pitch!r}", field="pitch")
        return ScoringResult(valid=False, game=game, error=error)
    except ScoringError as exc:
        logger.warning("Rejected pitch for game %s: %s", game.id, exc)
        return ScoringResult(valid=False, game=game, error=exc)

    state = game.score_details.game_state
    if pitch is Pitch.BALL and state.balls == 3:
        return record_at_bat(game, AtBatInput(result=AtBatResult.WALK))
    if pitch is Pitch.STRIKE and state.strikes == 2:
        return record_at_bat(game, AtBatInput(result=AtBatResult.STRIKEOUT))

    new = state.model_copy()
    if pitch is Pitch.BALL:
        new.balls += 1
    elif pitch is Pitch.STRIKE:
        new.strikes += 1
    else:
        new.fouls += 1
        if new.strikes < 2:
            new.strikes += 1

    details = game.score_details.model_copy(update={"game_state": new})
    return ScoringResult(
        valid=True,
        game=game.model_copy(update={"score_details": details, "updated_at": utc_now()}),
    )


def correct_at_bat(game: Game, event_id: str, reason: str = "") -> ScoringResult:
    """Void a recorded event and rebuild the live state from the log.

    The voided event stays in the log; a correction record is appended and
    the state is replayed from the opening state.
    """
    try:
        _require_status(game, (GameStatus.IN_PROGRESS,), "correct an at-bat")
        log, correction = _log_for(game).void(event_id, reason)
        opening = game.score_details.opening_state or GameState()
        state = replay_state(opening, log.effective(), game.lineups)
    except ScoringError as exc:
        logger.warning("Rejected correction for game %s: %s", game.id, exc)
        return ScoringResult(valid=False, game=game, error=exc)

    logger.info("Game %s: voided event %s (%s)", game.id, event_id, reason or "no reason given")
    return ScoringResult(valid=True, game=_with_log(game, log, state), correction=correction)


def replay_game(game: Game) -> Game:
    """Recompute the live state and derived details from the log alone."""
    log = _log_for(game)
    opening = game.score_details.opening_state or GameState()
    return _with_log(game, log, replay_state(opening, log.effective(), game.lineups))
