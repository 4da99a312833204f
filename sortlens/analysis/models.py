"""Data structures returned by the analysis engine.

These are plain dataclasses (not Pydantic) — they're ephemeral, computed
fresh on every call from the caller's input records, and never persisted by
the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sortlens.models import CardMovement

# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


@dataclass
class SimilarityPair:
    """Co-occurrence of two cards across participants."""

    card_id_1: str
    card_id_2: str
    card_name_1: str
    card_name_2: str
    co_occurrence: int
    similarity: float  # co_occurrence / participants, 0–1


@dataclass
class SimilarityMatrix:
    """Square, symmetric card x card similarity with a 1.0 diagonal."""

    card_ids: list[str] = field(default_factory=list)
    card_labels: list[str] = field(default_factory=list)
    values: list[list[float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.card_ids)

    def get(self, card_a: str, card_b: str) -> float:
        """Similarity between two cards by id."""
        return self.values[self.card_ids.index(card_a)][self.card_ids.index(card_b)]


# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------


@dataclass
class ClusterNode:
    """One node of a dendrogram, addressed by its index in the arena."""

    index: int
    name: str
    distance: float = 0.0
    size: int = 1  # number of leaves underneath
    card_index: int | None = None  # set on leaves only
    children: tuple[int, ...] = ()  # two child indices on internal nodes
    parent: int | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass
class Dendrogram:
    """Binary merge tree stored as a flat arena of nodes.

    Leaves occupy indices ``0..n-1`` in card order; internal nodes follow in
    merge order, so ``nodes[n + k]`` is the k-th merge.
    """

    nodes: list[ClusterNode]
    root: int

    @property
    def root_node(self) -> ClusterNode:
        return self.nodes[self.root]

    def leaves(self) -> list[ClusterNode]:
        return [n for n in self.nodes if n.is_leaf and n.card_index is not None]

    def internal_nodes(self) -> list[ClusterNode]:
        return [n for n in self.nodes if not n.is_leaf]

    def leaf_indices(self, node_index: int) -> list[int]:
        """Card indices under a node, left to right."""
        out: list[int] = []
        stack = [node_index]
        while stack:
            node = self.nodes[stack.pop()]
            if node.card_index is not None:
                out.append(node.card_index)
            stack.extend(reversed(node.children))
        return out

    def to_dict(self, node_index: int | None = None) -> dict[str, Any]:
        """Nested ``{name, distance, size, children}`` dict for tree layout code."""
        node = self.nodes[self.root if node_index is None else node_index]
        out: dict[str, Any] = {
            "name": node.name,
            "distance": node.distance,
            "size": node.size,
            "children": [self.to_dict(c) for c in node.children],
        }
        if node.card_index is not None:
            out["card_index"] = node.card_index
        return out


# ---------------------------------------------------------------------------
# Agreement
# ---------------------------------------------------------------------------


@dataclass
class CardAgreementScore:
    """How consistently participants placed one card."""

    card_id: str
    card_text: str
    agreement_score: float  # 0–100
    consensus_category: str
    category_agreement_percentage: float
    placement_frequency: dict[str, int]  # category name -> participants
    total_participants: int
    unique_placements: int  # distinct categories the card was ever placed in


@dataclass
class CategoryAgreementScore:
    """How consistently participants filled one category."""

    category_name: str
    agreement_score: float  # 0–100
    card_count: int  # distinct cards ever placed in the category
    usage_frequency: int  # participants who used the category
    usage_percentage: float
    cards_in_category: list[str] = field(default_factory=list)
    consensus_cards: list[str] = field(default_factory=list)


@dataclass
class AgreementMatrix:
    """Card x card percentage of participants who grouped the pair together."""

    card_ids: list[str] = field(default_factory=list)
    card_labels: list[str] = field(default_factory=list)
    values: list[list[float]] = field(default_factory=list)  # diagonal = 100


@dataclass
class AgreementInsights:
    """Extremes and distribution shown on the agreement summary."""

    highest_agreement_card: CardAgreementScore | None
    lowest_agreement_card: CardAgreementScore | None
    most_consensus_category: CategoryAgreementScore | None
    least_consensus_category: CategoryAgreementScore | None
    average_agreement_score: float
    agreement_distribution: dict[str, int]  # bucket label -> card count


@dataclass
class StudyAgreementAnalysis:
    """Complete agreement computation for a study."""

    overall_agreement_score: float
    card_agreements: list[CardAgreementScore]
    category_agreements: list[CategoryAgreementScore]
    agreement_matrix: AgreementMatrix
    insights: AgreementInsights
    total_participants: int


@dataclass
class CardFrequency:
    """How often one card landed in a category."""

    card_id: str
    card_text: str
    frequency: int


@dataclass
class CategoryFrequency:
    """Usage of one (category id, name) across participants."""

    category_id: str
    category_name: str
    usage: int
    percentage: float
    cards: list[CardFrequency] = field(default_factory=list)


@dataclass
class HeatmapCell:
    card_a: str
    card_b: str
    score: float
    card_a_text: str
    card_b_text: str


@dataclass
class AgreementHeatmap:
    """Flattened agreement matrix with off-diagonal extremes."""

    cells: list[HeatmapCell]
    max_score: float
    min_score: float


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


@dataclass
class TrendPoint:
    value: float
    date: float = 0.0


@dataclass
class TrendAnalysis:
    """Direction and strength of a linear trend over an ordered series."""

    direction: str  # "up", "down", "stable"
    magnitude: float  # 0–1
    confidence: float  # 0–1, sqrt(R²)
    data_points: list[TrendPoint] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------


@dataclass
class JourneyPhase:
    """One elapsed-time window of a sorting session."""

    phase: str  # "initial", "exploration", "refinement", "finalization"
    start_time: float
    end_time: float
    duration: float
    movement_count: int
    cards_affected: list[str]
    description: str


@dataclass
class JourneyStatistics:
    total_moves: int
    unique_cards_moved_count: int
    average_moves_per_card: float
    undo_redo_count: int  # moves back into a category the card already visited
    hesitation_events: int  # cards moved more than the hesitation threshold
    decision_time: float
    phases: list[JourneyPhase] = field(default_factory=list)


@dataclass
class ParticipantJourney:
    """One participant's ordered movements and what they add up to."""

    participant_id: str
    session_id: str
    start_time: float
    end_time: float
    total_duration: float
    movements: list[CardMovement]  # sorted by movement_index
    final_state: dict[str, str]  # card id -> last category
    card_histories: dict[str, list[str]]  # card id -> destination categories
    statistics: JourneyStatistics


@dataclass
class MovementPattern:
    """A per-card trajectory signature seen repeatedly across the study."""

    pattern: str
    frequency: int
    description: str
    card_ids: list[str]
    avg_duration: float


@dataclass
class ConvergencePattern:
    """How much participants' placements of a card converged during sorting."""

    card_id: str
    card_text: str
    initial_variance: float
    final_variance: float
    convergence_score: float  # 0–100
    movement_trajectory: list[str]  # categories visited, first-seen order


@dataclass
class PhaseSummary:
    average_duration: float = 0.0
    movement_rate: float = 0.0  # mean movements per participant in the phase
    participant_count: int = 0


@dataclass
class AverageJourney:
    duration: float
    movements: float
    hesitation_rate: float
    refinement_rate: float


@dataclass
class StudyJourneyAnalysis:
    """Cross-participant journey aggregation."""

    total_participants: int
    average_journey: AverageJourney
    common_movement_patterns: list[MovementPattern]
    problematic_cards: list[str]
    consensus_cards: list[str]
    convergence_analysis: list[ConvergencePattern]
    phase_analysis: dict[str, PhaseSummary]
    movement_trend: TrendAnalysis
    hesitation_trend: TrendAnalysis


# ---------------------------------------------------------------------------
# Cross-study
# ---------------------------------------------------------------------------


@dataclass
class CardHistorySummary:
    total_studies: int
    total_participants: int
    average_agreement_score: float
    agreement_trend: float  # recent mean - older mean; positive = improving
    category_stability: float  # 0–100
    highest_agreement_study: str
    lowest_agreement_study: str
    most_frequent_category: str
    volatility_index: float  # std-dev of agreement scores


@dataclass
class StudyComparison:
    study_id: str
    study_name: str
    agreement_score: float
    primary_category: str
    participant_count: int
    date: float
    deviation: float  # distance from the card's mean agreement


@dataclass
class CrossStudyAnalysis:
    """How one card's placement evolved over a series of studies."""

    card_id: str
    card_text: str
    summary: CardHistorySummary
    study_comparison: list[StudyComparison]
    agreement_trend: TrendAnalysis
    category_stability_trend: TrendAnalysis
    participation_trend: TrendAnalysis
    most_stable_category: str
    emerging_categories: list[str]
    declining_categories: list[str]
    consistency_score: float
    evolution_pattern: str  # "stable", "improving", "declining", "volatile"


# ---------------------------------------------------------------------------
# Tree testing
# ---------------------------------------------------------------------------


@dataclass
class PathAnalysis:
    path: list[str]
    frequency: int
    average_time: float
    success_rate: float  # 0–100


@dataclass
class TreeTestSummary:
    total_tasks: int
    task_success_rate: float  # 0–100
    average_clicks: float
    direct_success_rate: float  # 0–100
    most_common_paths: list[PathAnalysis] = field(default_factory=list)
