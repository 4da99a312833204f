"""Pairwise card similarity from co-occurrence across participants.

Two cards are similar to the extent that participants put them in the same
category.  The card set and its order come from the *first* result, so callers
that care about matrix order should put a canonical result first.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sortlens.analysis.metrics import safe_ratio
from sortlens.analysis.models import SimilarityMatrix, SimilarityPair
from sortlens.models import Card, ParticipantResult

logger = logging.getLogger(__name__)


def calculate_card_similarity(results: Sequence[ParticipantResult]) -> list[SimilarityPair]:
    """Co-occurrence similarity for every unordered pair of cards.

    Pairs are sorted by similarity descending.  The sort is stable, so
    equally similar pairs stay in generation order (i < j over the first
    result's cards).
    """
    if not results:
        return []

    cards = _cards_of(results[0])
    total = len(results)
    groups = [_card_groups(r) for r in results]

    pairs: list[SimilarityPair] = []
    for i, card_a in enumerate(cards):
        for card_b in cards[i + 1:]:
            co_occurrence = sum(
                1 for participant in groups
                if any(card_a.id in g and card_b.id in g for g in participant)
            )
            pairs.append(
                SimilarityPair(
                    card_id_1=card_a.id,
                    card_id_2=card_b.id,
                    card_name_1=card_a.text,
                    card_name_2=card_b.text,
                    co_occurrence=co_occurrence,
                    similarity=safe_ratio(co_occurrence, total),
                )
            )

    pairs.sort(key=lambda p: p.similarity, reverse=True)
    logger.debug("Similarity: %d cards, %d pairs, %d participants", len(cards), len(pairs), total)
    return pairs


def create_similarity_matrix(results: Sequence[ParticipantResult]) -> SimilarityMatrix:
    """Build the N x N similarity matrix over the first result's cards.

    The diagonal is 1.0 and off-diagonal cells are filled symmetrically.
    """
    if not results:
        return SimilarityMatrix()

    cards = _cards_of(results[0])
    position = {card.id: i for i, card in enumerate(cards)}
    size = len(cards)
    values = [[0.0] * size for _ in range(size)]
    for i in range(size):
        values[i][i] = 1.0

    for pair in calculate_card_similarity(results):
        i = position.get(pair.card_id_1)
        j = position.get(pair.card_id_2)
        if i is None or j is None:
            continue
        values[i][j] = pair.similarity
        values[j][i] = pair.similarity

    return SimilarityMatrix(
        card_ids=[c.id for c in cards],
        card_labels=[c.text for c in cards],
        values=values,
    )


def _cards_of(result: ParticipantResult) -> list[Card]:
    """Distinct cards of one result in discovery order."""
    seen: dict[str, Card] = {}
    for placement in result.placements:
        for card in placement.cards:
            seen.setdefault(card.id, card)
    return list(seen.values())


def _card_groups(result: ParticipantResult) -> list[frozenset[str]]:
    """One set of card ids per placement."""
    return [frozenset(c.id for c in p.cards) for p in result.placements]
