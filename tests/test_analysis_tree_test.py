"""Tests for sortlens.analysis.tree_test."""

from __future__ import annotations

import pytest
from builders import APPLE, make_result

from sortlens.analysis.tree_test import summarize_tree_tests
from sortlens.models import TreeTaskResult, TreeTestResult


def _task(task_id: str, path: list[str], **kwargs) -> TreeTaskResult:
    return TreeTaskResult(task_id=task_id, task=f"Find {task_id}", path=path, **kwargs)


@pytest.fixture
def tree_results() -> list[TreeTestResult]:
    return [
        TreeTestResult(
            participant_id="p1",
            tasks=[
                _task("t1", ["Home", "Products"], success=True, clicks=2, duration=10,
                      direct_success=True),
                _task("t2", ["Home", "About"], success=False, clicks=5, duration=30,
                      gave_up=True),
            ],
        ),
        TreeTestResult(
            participant_id="p2",
            tasks=[
                _task("t1", ["Home", "Products"], success=True, clicks=4, duration=20),
            ],
        ),
    ]


class TestSummarizeTreeTests:
    def test_rates(self, tree_results) -> None:
        summary = summarize_tree_tests(tree_results)
        assert summary.total_tasks == 3
        assert summary.task_success_rate == pytest.approx(66.67, abs=0.01)
        assert summary.direct_success_rate == pytest.approx(33.33, abs=0.01)
        assert summary.average_clicks == pytest.approx(11 / 3)

    def test_common_paths(self, tree_results) -> None:
        paths = summarize_tree_tests(tree_results).most_common_paths
        assert [p.path for p in paths] == [["Home", "Products"], ["Home", "About"]]
        assert paths[0].frequency == 2
        assert paths[0].average_time == pytest.approx(15.0)
        assert paths[0].success_rate == pytest.approx(100.0)
        assert paths[1].success_rate == 0.0

    def test_top_paths_limit(self, tree_results) -> None:
        assert len(summarize_tree_tests(tree_results, top_paths=1).most_common_paths) == 1

    def test_card_sorts_ignored(self, tree_results) -> None:
        mixed = [make_result("p3", {"Fruit": [APPLE]}), *tree_results]
        assert summarize_tree_tests(mixed).total_tasks == 3

    def test_no_tasks(self) -> None:
        summary = summarize_tree_tests([])
        assert summary.total_tasks == 0
        assert summary.task_success_rate == 0.0
        assert summary.average_clicks == 0.0
        assert summary.direct_success_rate == 0.0
        assert summary.most_common_paths == []
