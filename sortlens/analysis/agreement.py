"""Card and category agreement scores for card-sort studies.

Agreement is a percentage: how many participants made the same choice.
For a card, the choice is the category it went into; for a category, it is
which cards went into it.  The card x card agreement matrix is independent of
both: it only asks whether two cards shared *some* category.

Dict insertion order drives every tie-break here (first-seen wins), so
results are deterministic for a given input order.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from sortlens.analysis.metrics import AGREEMENT_BUCKETS, agreement_bucket, mean, percentage, safe_ratio
from sortlens.analysis.models import (
    AgreementHeatmap,
    AgreementInsights,
    AgreementMatrix,
    CardAgreementScore,
    CardFrequency,
    CategoryAgreementScore,
    CategoryFrequency,
    HeatmapCell,
    StudyAgreementAnalysis,
)
from sortlens.errors import NoCardSortDataError
from sortlens.models import AGREEMENT_STUDY_TYPES, ParticipantResult, StudyResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-card agreement
# ---------------------------------------------------------------------------


def calculate_card_agreement_scores(
    results: Sequence[ParticipantResult],
) -> list[CardAgreementScore]:
    """Agreement score for every card seen in *results*.

    Score = share of participants who put the card in its most common
    category, as a percentage.  When two categories tie, the one seen first
    is the consensus category.  Sorted by score descending (stable).
    """
    if not results:
        return []

    total = len(results)
    placements: dict[str, dict[str, int]] = {}  # card id -> category -> count
    card_text: dict[str, str] = {}

    for result in results:
        for placement in result.placements:
            for card in placement.cards:
                card_text.setdefault(card.id, card.text)
                counts = placements.setdefault(card.id, {})
                counts[placement.category_name] = counts.get(placement.category_name, 0) + 1

    scores: list[CardAgreementScore] = []
    for card_id, counts in placements.items():
        consensus, max_count = "", 0
        for category, count in counts.items():
            if count > max_count:
                consensus, max_count = category, count
        score = percentage(max_count, total)
        scores.append(
            CardAgreementScore(
                card_id=card_id,
                card_text=card_text[card_id],
                agreement_score=score,
                consensus_category=consensus,
                category_agreement_percentage=score,
                placement_frequency=dict(counts),
                total_participants=total,
                unique_placements=len(counts),
            )
        )

    scores.sort(key=lambda s: s.agreement_score, reverse=True)
    return scores


# ---------------------------------------------------------------------------
# Per-category agreement
# ---------------------------------------------------------------------------


@dataclass
class _CategoryUsage:
    users: dict[str, None] = field(default_factory=dict)  # ordered set of participant ids
    card_frequency: dict[str, int] = field(default_factory=dict)


def calculate_category_agreement_scores(
    results: Sequence[ParticipantResult],
) -> list[CategoryAgreementScore]:
    """Agreement score for every category name seen in *results*.

    For each category:

    - usage = participants who used it at least once
    - consistency = mean over its distinct cards of (card frequency / usage)
    - agreement = consistency x usage percentage
    - consensus cards = cards placed there by at least ceil(usage / 2) users

    Sorted by agreement descending (stable).
    """
    if not results:
        return []

    total = len(results)
    usage_by_name: dict[str, _CategoryUsage] = {}

    for result in results:
        for placement in result.placements:
            usage = usage_by_name.setdefault(placement.category_name, _CategoryUsage())
            usage.users[result.participant_id] = None
            for card in placement.cards:
                usage.card_frequency[card.id] = usage.card_frequency.get(card.id, 0) + 1

    scores: list[CategoryAgreementScore] = []
    for name, usage in usage_by_name.items():
        users = len(usage.users)
        usage_pct = percentage(users, total)
        consistency = safe_ratio(
            sum(safe_ratio(freq, users) for freq in usage.card_frequency.values()),
            len(usage.card_frequency),
        )
        threshold = math.ceil(users / 2)
        scores.append(
            CategoryAgreementScore(
                category_name=name,
                agreement_score=consistency * usage_pct,
                card_count=len(usage.card_frequency),
                usage_frequency=users,
                usage_percentage=usage_pct,
                cards_in_category=list(usage.card_frequency),
                consensus_cards=[
                    card_id for card_id, freq in usage.card_frequency.items()
                    if freq >= threshold
                ],
            )
        )

    scores.sort(key=lambda s: s.agreement_score, reverse=True)
    return scores


def calculate_category_frequencies(
    results: Sequence[ParticipantResult],
) -> list[CategoryFrequency]:
    """How often each (category id, name) was used, with per-card frequency.

    Unlike category agreement, categories are keyed by id *and* name, so two
    participants' custom categories with the same name but different ids are
    counted separately.  Sorted by usage descending.
    """
    if not results:
        return []

    total = len(results)
    by_key: dict[tuple[str, str], CategoryFrequency] = {}
    card_rows: dict[tuple[str, str], dict[str, CardFrequency]] = {}

    for result in results:
        for placement in result.placements:
            key = (placement.category_id, placement.category_name)
            freq = by_key.get(key)
            if freq is None:
                freq = CategoryFrequency(
                    category_id=placement.category_id,
                    category_name=placement.category_name,
                    usage=0,
                    percentage=0.0,
                )
                by_key[key] = freq
                card_rows[key] = {}
            freq.usage += 1
            rows = card_rows[key]
            for card in placement.cards:
                row = rows.get(card.id)
                if row is None:
                    row = CardFrequency(card_id=card.id, card_text=card.text, frequency=0)
                    rows[card.id] = row
                    freq.cards.append(row)
                row.frequency += 1

    frequencies = list(by_key.values())
    for freq in frequencies:
        freq.percentage = percentage(freq.usage, total)
    frequencies.sort(key=lambda f: f.usage, reverse=True)
    return frequencies


# ---------------------------------------------------------------------------
# Card x card agreement matrix
# ---------------------------------------------------------------------------


def generate_agreement_matrix(results: Sequence[ParticipantResult]) -> AgreementMatrix:
    """Percentage of participants who put each pair of cards in the same category.

    Covers every card seen in any result, in first-seen order.  A card's
    label is the text from its last occurrence.  The diagonal is 100.
    """
    if not results:
        return AgreementMatrix()

    labels: dict[str, str] = {}
    for result in results:
        for placement in result.placements:
            for card in placement.cards:
                labels[card.id] = card.text

    card_ids = list(labels)
    indexes = [r.card_index() for r in results]
    total = len(results)
    size = len(card_ids)
    values = [[0.0] * size for _ in range(size)]

    for i in range(size):
        values[i][i] = 100.0
        for j in range(i + 1, size):
            a, b = card_ids[i], card_ids[j]
            same = 0
            for index in indexes:
                cat_a = index.get(a)
                if cat_a and cat_a == index.get(b):
                    same += 1
            values[i][j] = values[j][i] = percentage(same, total)

    return AgreementMatrix(
        card_ids=card_ids,
        card_labels=[labels[c] for c in card_ids],
        values=values,
    )


def generate_agreement_heatmap(results: Sequence[ParticipantResult]) -> AgreementHeatmap:
    """Flatten the agreement matrix into labelled cells for a heatmap.

    ``max_score`` / ``min_score`` ignore the diagonal.  With fewer than two
    cards they stay at their starting values of 0 and 100.
    """
    matrix = generate_agreement_matrix(results)
    cells: list[HeatmapCell] = []
    max_score, min_score = 0.0, 100.0

    for i, row in enumerate(matrix.values):
        for j, score in enumerate(row):
            cells.append(
                HeatmapCell(
                    card_a=matrix.card_ids[i],
                    card_b=matrix.card_ids[j],
                    score=score,
                    card_a_text=matrix.card_labels[i],
                    card_b_text=matrix.card_labels[j],
                )
            )
            if i != j:
                max_score = max(max_score, score)
                min_score = min(min_score, score)

    return AgreementHeatmap(cells=cells, max_score=max_score, min_score=min_score)


# ---------------------------------------------------------------------------
# Study-level analysis
# ---------------------------------------------------------------------------


def perform_agreement_analysis(results: Sequence[StudyResult]) -> StudyAgreementAnalysis:
    """Run the full agreement analysis over a study's results.

    Only closed, open and reverse card-sort results are used; tree tests and
    other study types are skipped.

    Raises:
        NoCardSortDataError: If no usable card-sort results remain.
    """
    card_sorts = [
        r for r in results
        if isinstance(r, ParticipantResult) and r.study_type in AGREEMENT_STUDY_TYPES
    ]
    if not card_sorts:
        raise NoCardSortDataError()

    card_agreements = calculate_card_agreement_scores(card_sorts)
    category_agreements = calculate_category_agreement_scores(card_sorts)
    matrix = generate_agreement_matrix(card_sorts)

    overall = mean([c.agreement_score for c in card_agreements])

    distribution = {label: 0 for label, _ in AGREEMENT_BUCKETS}
    for card in card_agreements:
        distribution[agreement_bucket(card.agreement_score)] += 1

    insights = AgreementInsights(
        highest_agreement_card=card_agreements[0] if card_agreements else None,
        lowest_agreement_card=card_agreements[-1] if card_agreements else None,
        most_consensus_category=category_agreements[0] if category_agreements else None,
        least_consensus_category=category_agreements[-1] if category_agreements else None,
        average_agreement_score=overall,
        agreement_distribution=distribution,
    )

    logger.debug(
        "Agreement: %d participants (%d skipped), %d cards, overall %.1f%%",
        len(card_sorts),
        len(results) - len(card_sorts),
        len(card_agreements),
        overall,
    )

    return StudyAgreementAnalysis(
        overall_agreement_score=overall,
        card_agreements=card_agreements,
        category_agreements=category_agreements,
        agreement_matrix=matrix,
        insights=insights,
        total_participants=len(card_sorts),
    )
