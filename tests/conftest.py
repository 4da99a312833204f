"""Shared test fixtures for Sortlens tests."""

from __future__ import annotations

import pytest
from builders import APPLE, BANANA, CHIPS, make_move, make_result

from sortlens.models import CardMovement, ParticipantResult


@pytest.fixture
def fruit_results() -> list[ParticipantResult]:
    """Three participants; two put Apple with Fruit, one with Snacks."""
    return [
        make_result("p1", {"Fruit": [APPLE, BANANA], "Snacks": [CHIPS]}),
        make_result("p2", {"Fruit": [APPLE, BANANA], "Snacks": [CHIPS]}),
        make_result("p3", {"Fruit": [BANANA], "Snacks": [APPLE, CHIPS]}),
    ]


@pytest.fixture
def back_and_forth_moves() -> list[CardMovement]:
    """Card 1 goes X -> Y -> X over two seconds."""
    return [
        make_move("1", "X", 0, 0),
        make_move("1", "Y", 1, 1000, from_category="X"),
        make_move("1", "X", 2, 2000, from_category="Y"),
    ]
