"""Analysis engine — similarity, clustering, agreement, journeys and trends."""

from sortlens.analysis.agreement import (
    calculate_card_agreement_scores,
    calculate_category_agreement_scores,
    calculate_category_frequencies,
    generate_agreement_heatmap,
    generate_agreement_matrix,
    perform_agreement_analysis,
)
from sortlens.analysis.clustering import cluster
from sortlens.analysis.cross_study import analyze_card_history, summarize_card_history
from sortlens.analysis.journey import analyze_participant_journey, analyze_study_journeys
from sortlens.analysis.models import Dendrogram, StudyAgreementAnalysis, StudyJourneyAnalysis
from sortlens.analysis.similarity import calculate_card_similarity, create_similarity_matrix
from sortlens.analysis.tree_test import summarize_tree_tests
from sortlens.analysis.trend import calculate_trend

__all__ = [
    "Dendrogram",
    "StudyAgreementAnalysis",
    "StudyJourneyAnalysis",
    "analyze_card_history",
    "analyze_participant_journey",
    "analyze_study_journeys",
    "calculate_card_agreement_scores",
    "calculate_card_similarity",
    "calculate_category_agreement_scores",
    "calculate_category_frequencies",
    "calculate_trend",
    "cluster",
    "create_similarity_matrix",
    "generate_agreement_heatmap",
    "generate_agreement_matrix",
    "perform_agreement_analysis",
    "summarize_card_history",
    "summarize_tree_tests",
]
