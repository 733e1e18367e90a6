# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Append-only at-bat log for a single game.

The log never rewrites history.  A mistaken entry is voided by appending a
:class:`~models.Correction` that names it; readers that want the game as it
should have been recorded use :meth:`EventLog.effective`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Optional

from models import AtBatEvent, Correction, ScoreDetails, ScoringValidationError, utc_now


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class EventLog:
    """Immutable view over one game's events and corrections."""
    game_id: str
    events: tuple[AtBatEvent, ...] = ()
    corrections: tuple[Correction, ...] = ()

    @classmethod
    def from_details(cls, game_id: str, details: ScoreDetails) -> EventLog:
        return cls(
            game_id=game_id,
            events=tuple(details.at_bats),
            corrections=tuple(details.corrections),
        )

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[AtBatEvent]:
        return iter(self.events)

    # -- queries -----------------------------------------------------------

    def get(self, event_id: str) -> Optional[AtBatEvent]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    @property
    def voided_ids(self) -> frozenset[str]:
        return frozenset(c.corrects_id for c in self.corrections)

    def effective(self) -> list[AtBatEvent]:
        """Events in log order, minus any that a correction voided."""
        voided = self.voided_ids
        return [e for e in self.events if e.id not in voided]

    def for_player(self, player_id: str) -> list[AtBatEvent]:
        return [e for e in self.effective() if e.player_id == player_id]

    def last(self) -> Optional[AtBatEvent]:
        effective = self.effective()
        return effective[-1] if effective else None

    # -- appends -----------------------------------------------------------

    def append(self, event: AtBatEvent) -> EventLog:
        if event.game_id != self.game_id:
            raise ScoringValidationError(
                f"Event {event.id} belongs to game {event.game_id}, not {self.game_id}",
                field="game_id",
            )
        if self.get(event.id) is not None:
            raise ScoringValidationError(
                f"Event {event.id} is already in the log", field="id"
            )
        return EventLog(self.game_id, self.events + (event,), self.corrections)

    def void(self, event_id: str, reason: str = "",
             timestamp: datetime | None = None) -> tuple[EventLog, Correction]:
        """Append a correction voiding *event_id*."""
        if self.get(event_id) is None:
            raise ScoringValidationError(
                f"No event {event_id} in the log", field="corrects_id"
            )
        if event_id in self.voided_ids:
            raise ScoringValidationError(
                f"Event {event_id} has already been corrected", field="corrects_id"
            )
        correction = Correction(
            id=new_event_id(),
            game_id=self.game_id,
            corrects_id=event_id,
            reason=reason,
            timestamp=timestamp or utc_now(),
        )
        return EventLog(self.game_id, self.events, self.corrections + (correction,)), correction


def effective_events(events: Iterable[AtBatEvent],
                     corrections: Iterable[Correction] = ()) -> list[AtBatEvent]:
    voided = {c.corrects_id for c in corrections}
    return [e for e in events if e.id not in voided]
