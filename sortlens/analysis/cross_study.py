"""How a single card's placement evolves across a series of studies.

The input is the card's study history: one ``CrossStudyEntry`` per completed
study, as produced by running agreement analysis on each study in turn.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from sortlens.analysis.metrics import mean, percentage, population_stddev
from sortlens.analysis.models import (
    CardHistorySummary,
    CrossStudyAnalysis,
    StudyComparison,
    TrendPoint,
)
from sortlens.analysis.trend import DEFAULT_SLOPE_THRESHOLD, calculate_trend
from sortlens.errors import InsufficientHistoryError
from sortlens.models import CrossStudyEntry

RECENT_WINDOW = 3  # studies compared against the rest for agreement_trend
VOLATILITY_THRESHOLD = 20.0
TREND_MAGNITUDE_THRESHOLD = 0.3


def summarize_card_history(history: Sequence[CrossStudyEntry]) -> CardHistorySummary:
    """Roll up a card's chronological study history into summary figures."""
    entries = sorted(history, key=lambda e: e.date_completed)
    scores = [e.average_agreement_score for e in entries]

    agreement_trend = 0.0
    older = entries[:-RECENT_WINDOW]
    if older:
        recent = entries[-RECENT_WINDOW:]
        agreement_trend = (
            mean([e.average_agreement_score for e in recent])
            - mean([e.average_agreement_score for e in older])
        )

    category_counts = _count([e.most_common_category for e in entries])
    top = max(category_counts.items(), key=lambda item: item[1], default=("", 0))

    by_agreement = sorted(entries, key=lambda e: e.average_agreement_score, reverse=True)

    return CardHistorySummary(
        total_studies=len(entries),
        total_participants=sum(e.participant_count for e in entries),
        average_agreement_score=mean(scores),
        agreement_trend=agreement_trend,
        category_stability=percentage(top[1], len(entries)),
        highest_agreement_study=by_agreement[0].study_id if by_agreement else "",
        lowest_agreement_study=by_agreement[-1].study_id if by_agreement else "",
        most_frequent_category=top[0],
        volatility_index=population_stddev(scores),
    )


def analyze_card_history(
    card_id: str,
    card_text: str,
    history: Sequence[CrossStudyEntry],
    *,
    slope_threshold: float = DEFAULT_SLOPE_THRESHOLD,
) -> CrossStudyAnalysis:
    """Compare a card across studies and classify how it is evolving.

    Raises:
        InsufficientHistoryError: With fewer than two studies.
    """
    if len(history) < 2:
        raise InsufficientHistoryError(card_id, len(history))

    entries = sorted(history, key=lambda e: e.date_completed)
    summary = summarize_card_history(entries)

    agreement_trend = calculate_trend(
        [TrendPoint(e.average_agreement_score, e.date_completed) for e in entries],
        slope_threshold=slope_threshold,
    )

    # Running stability: share of studies so far won by the leading category
    stability_points: list[TrendPoint] = []
    running: dict[str, int] = {}
    for k, entry in enumerate(entries, start=1):
        running[entry.most_common_category] = running.get(entry.most_common_category, 0) + 1
        stability_points.append(
            TrendPoint(percentage(max(running.values()), k), entry.date_completed)
        )
    stability_trend = calculate_trend(stability_points, slope_threshold=slope_threshold)

    participation_trend = calculate_trend(
        [TrendPoint(e.participant_count, e.date_completed) for e in entries],
        slope_threshold=slope_threshold,
    )

    recent = entries[-math.ceil(len(entries) / 2):]
    older = entries[: len(entries) // 2]
    recent_categories = list(dict.fromkeys(e.most_common_category for e in recent))
    older_categories = list(dict.fromkeys(e.most_common_category for e in older))

    if summary.volatility_index > VOLATILITY_THRESHOLD:
        pattern = "volatile"
    elif (
        agreement_trend.direction == "up"
        and agreement_trend.magnitude > TREND_MAGNITUDE_THRESHOLD
    ):
        pattern = "improving"
    elif (
        agreement_trend.direction == "down"
        and agreement_trend.magnitude > TREND_MAGNITUDE_THRESHOLD
    ):
        pattern = "declining"
    else:
        pattern = "stable"

    return CrossStudyAnalysis(
        card_id=card_id,
        card_text=card_text,
        summary=summary,
        study_comparison=[
            StudyComparison(
                study_id=e.study_id,
                study_name=e.study_name,
                agreement_score=e.average_agreement_score,
                primary_category=e.most_common_category,
                participant_count=e.participant_count,
                date=e.date_completed,
                deviation=abs(e.average_agreement_score - summary.average_agreement_score),
            )
            for e in entries
        ],
        agreement_trend=agreement_trend,
        category_stability_trend=stability_trend,
        participation_trend=participation_trend,
        most_stable_category=summary.most_frequent_category,
        emerging_categories=[c for c in recent_categories if c not in older_categories],
        declining_categories=[c for c in older_categories if c not in recent_categories],
        consistency_score=summary.category_stability,
        evolution_pattern=pattern,
    )


def _count(values: Sequence[str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return counts
