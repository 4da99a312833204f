"""Summary statistics for tree-test results."""

from __future__ import annotations

from collections.abc import Sequence

from sortlens.analysis.metrics import mean, percentage, safe_ratio
from sortlens.analysis.models import PathAnalysis, TreeTestSummary
from sortlens.models import StudyResult, TreeTaskResult, TreeTestResult

DEFAULT_TOP_PATHS = 5


def summarize_tree_tests(
    results: Sequence[StudyResult],
    *,
    top_paths: int = DEFAULT_TOP_PATHS,
) -> TreeTestSummary:
    """Success, click and path statistics over every tree-test task attempt.

    Non tree-test results are ignored.  With no tasks all rates are 0.
    """
    tasks: list[TreeTaskResult] = [
        task for r in results if isinstance(r, TreeTestResult) for task in r.tasks
    ]
    total = len(tasks)

    by_path: dict[tuple[str, ...], list[TreeTaskResult]] = {}
    for task in tasks:
        by_path.setdefault(tuple(task.path), []).append(task)

    ranked = sorted(by_path.items(), key=lambda item: len(item[1]), reverse=True)
    paths = [
        PathAnalysis(
            path=list(path),
            frequency=len(attempts),
            average_time=mean([a.duration for a in attempts]),
            success_rate=percentage(sum(1 for a in attempts if a.success), len(attempts)),
        )
        for path, attempts in ranked[:top_paths]
    ]

    return TreeTestSummary(
        total_tasks=total,
        task_success_rate=percentage(sum(1 for t in tasks if t.success), total),
        average_clicks=safe_ratio(sum(t.clicks for t in tasks), total),
        direct_success_rate=percentage(sum(1 for t in tasks if t.direct_success), total),
        most_common_paths=paths,
    )
