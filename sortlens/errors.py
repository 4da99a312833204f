"""Typed failure conditions raised by the analysis engine.

Functions that tolerate empty input return empty structures instead of
raising.  The errors here are for functions whose contract needs at least
one qualifying record.
"""

from __future__ import annotations


class SortlensError(Exception):
    """Base class for sortlens errors."""


class InsufficientDataError(SortlensError, ValueError):
    """An analysis needs at least one qualifying record and got none."""


class NoCardSortDataError(InsufficientDataError):
    """No card-sort results were found for agreement analysis."""

    def __init__(self) -> None:
        super().__init__("No card sorting results found for agreement analysis")


class EmptyMovementSetError(InsufficientDataError):
    """A participant journey was requested with zero movements."""

    def __init__(self, participant_id: str | None = None) -> None:
        who = f" for participant {participant_id}" if participant_id else ""
        super().__init__(f"No movements provided for journey analysis{who}")
        self.participant_id = participant_id


class NoJourneysError(InsufficientDataError):
    """Study journey aggregation was requested with zero journeys."""

    def __init__(self) -> None:
        super().__init__("No participant journeys provided")


class InsufficientHistoryError(InsufficientDataError):
    """Cross-study analysis needs at least two studies for a card."""

    def __init__(self, card_id: str, count: int) -> None:
        super().__init__(
            f"Card {card_id} has {count} study result(s); at least 2 are needed"
        )
        self.card_id = card_id
        self.count = count
