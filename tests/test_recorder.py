"""Tests for sortlens.recorder — capture-side movement recording."""

from __future__ import annotations

import re
from itertools import count

import pytest

from sortlens.errors import EmptyMovementSetError
from sortlens.recorder import MovementRecorder, new_session_id


def _clock(start: int = 1_000):
    """Deterministic millisecond clock ticking by 100 per call."""
    ticks = count(start, 100)
    return lambda: float(next(ticks))


class TestNewSessionId:
    def test_format(self) -> None:
        assert re.fullmatch(r"session_1700000000000_[0-9a-f]{6}", new_session_id(lambda: 1.7e12))

    def test_unique(self) -> None:
        assert new_session_id() != new_session_id()


class TestMovementRecorder:
    def test_indexes_increase(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock())
        first = recorder.record("a", "Apple", None, "Fruit")
        second = recorder.record("a", "Apple", "Fruit", "Snacks")
        assert (first.movement_index, second.movement_index) == (0, 1)
        assert second.from_category == "Fruit"
        assert first.participant_id == "p1"
        assert first.session_id == "sess"

    def test_clock_stamps_movements(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock(5_000))
        assert recorder.record("a", "Apple", None, "Fruit").timestamp == 5_000
        assert recorder.record("b", "Banana", None, "Fruit").timestamp == 5_100

    def test_explicit_timestamp(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock())
        assert recorder.record("a", "Apple", None, "Fruit", timestamp=42).timestamp == 42

    def test_generated_session_id(self) -> None:
        recorder = MovementRecorder("p1", clock=_clock(2_000))
        assert recorder.session_id.startswith("session_2000_")

    def test_movements_is_a_copy(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock())
        recorder.record("a", "Apple", None, "Fruit")
        recorder.movements.clear()
        assert len(recorder.movements) == 1

    def test_journey(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock())
        recorder.record("a", "Apple", None, "X")
        recorder.record("a", "Apple", "X", "Y")
        recorder.record("a", "Apple", "Y", "X")
        journey = recorder.journey()
        assert journey.participant_id == "p1"
        assert journey.session_id == "sess"
        assert journey.statistics.undo_redo_count == 1
        assert journey.total_duration == 200

    def test_empty_journey_raises(self) -> None:
        with pytest.raises(EmptyMovementSetError):
            MovementRecorder("p1", "sess").journey()

    def test_reset_starts_new_session(self) -> None:
        recorder = MovementRecorder("p1", "sess", clock=_clock())
        recorder.record("a", "Apple", None, "Fruit")
        recorder.reset()
        assert recorder.movements == []
        assert recorder.session_id != "sess"
        assert recorder.record("b", "Banana", None, "Fruit").movement_index == 0
