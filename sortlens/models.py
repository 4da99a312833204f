"""Input records handed to the engine by the surrounding study application.

These are Pydantic models: they cross the boundary from the capture UI (or a
JSON file on the CLI) and get validated on the way in.  The engine never
mutates them.  Timestamps and durations are milliseconds since the epoch.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class StudyType(str, Enum):
    """Kind of information-architecture study a result came from."""

    CARD_SORTING = "card-sorting"
    OPEN_CARD_SORTING = "open-card-sorting"
    HYBRID_CARD_SORTING = "hybrid-card-sorting"
    SEQUENTIAL_CARD_SORTING = "sequential-card-sorting"
    REVERSE_CARD_SORTING = "reverse-card-sorting"
    TREE_TESTING = "tree-testing"


# Study types whose results feed agreement analysis.
AGREEMENT_STUDY_TYPES = frozenset(
    {
        StudyType.CARD_SORTING,
        StudyType.OPEN_CARD_SORTING,
        StudyType.REVERSE_CARD_SORTING,
    }
)


class Card(BaseModel):
    """A card as placed by a participant.  Numeric ids are stored as strings."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    text: str


class CategoryPlacement(BaseModel):
    """The cards one participant put into one category."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    category_id: str = ""
    category_name: str
    cards: list[Card] = Field(default_factory=list)
    is_custom_category: bool = False


class ParticipantResult(BaseModel):
    """One participant's card-sort result for one study.

    A card id appears in at most one placement.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    participant_id: str
    study_id: str = ""
    study_type: StudyType = StudyType.CARD_SORTING
    placements: list[CategoryPlacement]
    start_time: float | None = None
    completion_time: float | None = None
    total_duration: float | None = None

    def card_index(self) -> dict[str, str]:
        """Map card id -> category name for this participant.

        If the invariant is broken and a card sits in two placements, the
        later placement wins.
        """
        index: dict[str, str] = {}
        for placement in self.placements:
            for card in placement.cards:
                index[card.id] = placement.category_name
        return index


class TreeTaskResult(BaseModel):
    """One tree-test task attempt."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    task_id: str
    task: str = ""
    path: list[str] = Field(default_factory=list)
    success: bool = False
    clicks: int = 0
    duration: float = 0.0
    final_destination: str = ""
    gave_up: bool = False
    direct_success: bool = False  # found without backtracking


class TreeTestResult(BaseModel):
    """One participant's tree-test result for one study."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    participant_id: str
    study_id: str = ""
    study_type: Literal[StudyType.TREE_TESTING] = StudyType.TREE_TESTING
    tasks: list[TreeTaskResult]
    start_time: float | None = None
    completion_time: float | None = None
    total_duration: float | None = None


StudyResult = ParticipantResult | TreeTestResult


class CardMovement(BaseModel):
    """A single drag of a card into a category during a sorting session."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    card_id: str
    card_text: str = ""
    from_category: str | None = None  # None on first placement
    to_category: str
    timestamp: float
    movement_index: int
    session_id: str = ""
    participant_id: str = ""


class CrossStudyEntry(BaseModel):
    """How one card fared in one completed study."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    study_id: str
    study_name: str = ""
    study_type: str = ""
    participant_count: int
    average_agreement_score: float
    most_common_category: str
    category_frequency: dict[str, int] = Field(default_factory=dict)
    date_completed: float
