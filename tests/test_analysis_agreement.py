"""Tests for sortlens.analysis.agreement — card and category agreement."""

from __future__ import annotations

import pytest
from builders import APPLE, BANANA, CHIPS, make_result

from sortlens.analysis.agreement import (
    calculate_card_agreement_scores,
    calculate_category_agreement_scores,
    calculate_category_frequencies,
    generate_agreement_heatmap,
    generate_agreement_matrix,
    perform_agreement_analysis,
)
from sortlens.errors import InsufficientDataError, NoCardSortDataError
from sortlens.models import Card, CategoryPlacement, ParticipantResult, TreeTestResult

# ---------------------------------------------------------------------------
# Card agreement
# ---------------------------------------------------------------------------


class TestCardAgreement:
    def test_empty(self) -> None:
        assert calculate_card_agreement_scores([]) == []

    def test_two_thirds_consensus(self, fruit_results) -> None:
        """Apple: Fruit twice, Snacks once → 66.67% with Fruit as consensus."""
        scores = {s.card_id: s for s in calculate_card_agreement_scores(fruit_results)}
        apple = scores["apple"]
        assert apple.agreement_score == pytest.approx(66.67, abs=0.01)
        assert apple.consensus_category == "Fruit"
        assert apple.category_agreement_percentage == apple.agreement_score
        assert apple.placement_frequency == {"Fruit": 2, "Snacks": 1}
        assert apple.unique_placements == 2
        assert apple.total_participants == 3

    def test_full_agreement(self, fruit_results) -> None:
        scores = {s.card_id: s for s in calculate_card_agreement_scores(fruit_results)}
        assert scores["banana"].agreement_score == pytest.approx(100.0)
        assert scores["chips"].consensus_category == "Snacks"

    def test_sorted_descending_stable(self, fruit_results) -> None:
        scores = calculate_card_agreement_scores(fruit_results)
        assert [s.card_id for s in scores] == ["banana", "chips", "apple"]

    def test_tie_goes_to_first_seen_category(self) -> None:
        results = [
            make_result("p1", {"Later": [APPLE]}),
            make_result("p2", {"Sooner": [APPLE]}),
        ]
        score = calculate_card_agreement_scores(results)[0]
        assert score.consensus_category == "Later"
        assert score.agreement_score == pytest.approx(50.0)

    def test_card_text_from_first_occurrence(self) -> None:
        results = [
            make_result("p1", {"G": [Card(id="x", text="First")]}),
            make_result("p2", {"G": [Card(id="x", text="Renamed")]}),
        ]
        assert calculate_card_agreement_scores(results)[0].card_text == "First"

    def test_scores_in_range(self, fruit_results) -> None:
        for score in calculate_card_agreement_scores(fruit_results):
            assert 0.0 <= score.agreement_score <= 100.0


# ---------------------------------------------------------------------------
# Category agreement and frequencies
# ---------------------------------------------------------------------------


class TestCategoryAgreement:
    def test_empty(self) -> None:
        assert calculate_category_agreement_scores([]) == []

    def test_scores(self, fruit_results) -> None:
        scores = calculate_category_agreement_scores(fruit_results)
        assert [s.category_name for s in scores] == ["Fruit", "Snacks"]

        fruit, snacks = scores
        # consistency (2/3 + 3/3) / 2 x 100% usage
        assert fruit.agreement_score == pytest.approx(83.33, abs=0.01)
        assert fruit.usage_frequency == 3
        assert fruit.usage_percentage == pytest.approx(100.0)
        assert fruit.cards_in_category == ["apple", "banana"]
        assert fruit.consensus_cards == ["apple", "banana"]

        assert snacks.agreement_score == pytest.approx(66.67, abs=0.01)
        assert snacks.card_count == 2
        # apple placed there by 1 of 3 users, below ceil(3/2) = 2
        assert snacks.consensus_cards == ["chips"]

    def test_partial_usage_scales_score(self) -> None:
        results = [
            make_result("p1", {"Tools": [APPLE]}),
            make_result("p2", {"Food": [APPLE]}),
        ]
        scores = {s.category_name: s for s in calculate_category_agreement_scores(results)}
        assert scores["Tools"].usage_percentage == pytest.approx(50.0)
        # consistency 1.0 x 50% usage
        assert scores["Tools"].agreement_score == pytest.approx(50.0)

    def test_participant_counted_once(self) -> None:
        """Two placements with the same name from one participant = one user."""
        result = ParticipantResult(
            participant_id="p1",
            placements=[
                CategoryPlacement(category_id="1", category_name="Misc", cards=[APPLE]),
                CategoryPlacement(category_id="2", category_name="Misc", cards=[BANANA]),
            ],
        )
        score = calculate_category_agreement_scores([result])[0]
        assert score.usage_frequency == 1
        assert score.card_count == 2


class TestCategoryFrequencies:
    def test_empty(self) -> None:
        assert calculate_category_frequencies([]) == []

    def test_usage_and_cards(self, fruit_results) -> None:
        fruit, snacks = calculate_category_frequencies(fruit_results)
        assert (fruit.category_id, fruit.category_name) == ("0", "Fruit")
        assert fruit.usage == 3
        assert fruit.percentage == pytest.approx(100.0)
        assert [(c.card_id, c.frequency) for c in fruit.cards] == [("apple", 2), ("banana", 3)]
        assert [(c.card_id, c.frequency) for c in snacks.cards] == [("chips", 3), ("apple", 1)]

    def test_same_name_different_id_kept_apart(self) -> None:
        results = [
            ParticipantResult(
                participant_id="p1",
                placements=[CategoryPlacement(category_id="c1", category_name="Misc", cards=[APPLE])],
            ),
            ParticipantResult(
                participant_id="p2",
                placements=[CategoryPlacement(category_id="c2", category_name="Misc", cards=[APPLE])],
            ),
        ]
        freqs = calculate_category_frequencies(results)
        assert [f.category_id for f in freqs] == ["c1", "c2"]
        assert all(f.usage == 1 for f in freqs)


# ---------------------------------------------------------------------------
# Agreement matrix and heatmap
# ---------------------------------------------------------------------------


class TestAgreementMatrix:
    def test_empty(self) -> None:
        matrix = generate_agreement_matrix([])
        assert matrix.card_ids == []
        assert matrix.values == []

    def test_values(self, fruit_results) -> None:
        matrix = generate_agreement_matrix(fruit_results)
        assert matrix.card_ids == ["apple", "banana", "chips"]
        v = matrix.values
        assert v[0][1] == pytest.approx(66.67, abs=0.01)
        assert v[0][2] == pytest.approx(33.33, abs=0.01)
        assert v[1][2] == 0.0

    def test_symmetric_with_full_diagonal(self, fruit_results) -> None:
        v = generate_agreement_matrix(fruit_results).values
        for i in range(len(v)):
            assert v[i][i] == 100.0
            for j in range(len(v)):
                assert v[i][j] == v[j][i]
                assert 0.0 <= v[i][j] <= 100.0

    def test_three_of_four(self) -> None:
        a, b = Card(id="a", text="A"), Card(id="b", text="B")
        results = [
            make_result("p1", {"G": [a, b]}),
            make_result("p2", {"G": [a, b]}),
            make_result("p3", {"G": [a, b]}),
            make_result("p4", {"G": [a], "H": [b]}),
        ]
        v = generate_agreement_matrix(results).values
        assert v[0][1] == pytest.approx(75.0)
        assert v[1][0] == pytest.approx(75.0)

    def test_covers_cards_from_every_result(self) -> None:
        results = [
            make_result("p1", {"G": [APPLE]}),
            make_result("p2", {"G": [BANANA, Card(id="apple", text="Green apple")]}),
        ]
        matrix = generate_agreement_matrix(results)
        assert matrix.card_ids == ["apple", "banana"]
        # label from the last occurrence
        assert matrix.card_labels == ["Green apple", "Banana"]
        assert matrix.values[0][1] == pytest.approx(50.0)


class TestAgreementHeatmap:
    def test_cells_and_extremes(self, fruit_results) -> None:
        heatmap = generate_agreement_heatmap(fruit_results)
        assert len(heatmap.cells) == 9
        assert heatmap.max_score == pytest.approx(66.67, abs=0.01)
        assert heatmap.min_score == 0.0
        first = heatmap.cells[0]
        assert (first.card_a, first.card_b, first.score) == ("apple", "apple", 100.0)
        assert first.card_a_text == "Apple"

    def test_single_card_keeps_initial_extremes(self) -> None:
        heatmap = generate_agreement_heatmap([make_result("p1", {"G": [CHIPS]})])
        assert len(heatmap.cells) == 1
        assert heatmap.max_score == 0.0
        assert heatmap.min_score == 100.0


# ---------------------------------------------------------------------------
# perform_agreement_analysis
# ---------------------------------------------------------------------------


class TestPerformAgreementAnalysis:
    def test_empty_raises(self) -> None:
        with pytest.raises(InsufficientDataError):
            perform_agreement_analysis([])

    def test_only_tree_tests_raises(self) -> None:
        tree = TreeTestResult(participant_id="p1", tasks=[])
        with pytest.raises(NoCardSortDataError, match="No card sorting results"):
            perform_agreement_analysis([tree])

    def test_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            perform_agreement_analysis([])

    def test_full_analysis(self, fruit_results) -> None:
        analysis = perform_agreement_analysis(fruit_results)
        assert analysis.total_participants == 3
        assert analysis.overall_agreement_score == pytest.approx((100 + 100 + 200 / 3) / 3)
        assert analysis.insights.average_agreement_score == analysis.overall_agreement_score
        assert analysis.insights.highest_agreement_card.card_id == "banana"
        assert analysis.insights.lowest_agreement_card.card_id == "apple"
        assert analysis.insights.most_consensus_category.category_name == "Fruit"
        assert analysis.insights.least_consensus_category.category_name == "Snacks"
        assert analysis.agreement_matrix.card_ids == ["apple", "banana", "chips"]

    def test_distribution_has_every_bucket(self, fruit_results) -> None:
        dist = perform_agreement_analysis(fruit_results).insights.agreement_distribution
        assert list(dist) == ["90-100%", "80-89%", "70-79%", "60-69%", "50-59%", "Below 50%"]
        assert dist["90-100%"] == 2
        assert dist["60-69%"] == 1
        assert sum(dist.values()) == 3

    def test_skips_unsupported_study_types(self, fruit_results) -> None:
        hybrid = make_result("p9", {"Snacks": [APPLE]}, study_type="hybrid-card-sorting")
        tree = TreeTestResult(participant_id="p10", tasks=[])
        analysis = perform_agreement_analysis([*fruit_results, hybrid, tree])
        assert analysis.total_participants == 3

    def test_open_and_reverse_sorts_included(self) -> None:
        results = [
            make_result("p1", {"Fruit": [APPLE]}, study_type="open-card-sorting"),
            make_result("p2", {"Fruit": [APPLE]}, study_type="reverse-card-sorting"),
        ]
        analysis = perform_agreement_analysis(results)
        assert analysis.total_participants == 2
        assert analysis.overall_agreement_score == pytest.approx(100.0)
