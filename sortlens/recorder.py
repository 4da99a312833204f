"""Capture-side helper that records card movements during a sorting session.

The analysis engine is stateless; this is the one stateful piece, used by the
sorting UI (and by tests) to produce a well-formed ``CardMovement`` stream.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable

from sortlens.analysis.journey import analyze_participant_journey
from sortlens.analysis.models import ParticipantJourney
from sortlens.models import CardMovement


def _now_ms() -> float:
    return time.time() * 1000


def new_session_id(clock: Callable[[], float] = _now_ms) -> str:
    """``session_<ms>_<6 hex chars>``."""
    return f"session_{int(clock())}_{uuid.uuid4().hex[:6]}"


class MovementRecorder:
    """Stamps each movement with the participant, session and a running index."""

    def __init__(
        self,
        participant_id: str,
        session_id: str | None = None,
        *,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self.participant_id = participant_id
        self._clock = clock
        self.session_id = session_id or new_session_id(clock)
        self._movements: list[CardMovement] = []
        self._next_index = 0

    def record(
        self,
        card_id: str,
        card_text: str,
        from_category: str | None,
        to_category: str,
        *,
        timestamp: float | None = None,
    ) -> CardMovement:
        """Record one drag and return the stored event."""
        movement = CardMovement(
            card_id=card_id,
            card_text=card_text,
            from_category=from_category,
            to_category=to_category,
            timestamp=self._clock() if timestamp is None else timestamp,
            movement_index=self._next_index,
            session_id=self.session_id,
            participant_id=self.participant_id,
        )
        self._next_index += 1
        self._movements.append(movement)
        return movement

    @property
    def movements(self) -> list[CardMovement]:
        """Copy of the movements recorded so far."""
        return list(self._movements)

    def journey(self) -> ParticipantJourney:
        """Analyze the session so far.  Raises ``EmptyMovementSetError`` if empty."""
        return analyze_participant_journey(self._movements, self.participant_id)

    def reset(self) -> None:
        """Drop recorded movements and start a fresh session."""
        self._movements = []
        self._next_index = 0
        self.session_id = new_session_id(self._clock)
