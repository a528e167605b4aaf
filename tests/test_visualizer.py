"""
Smoke tests for the chart generator.
"""

from __future__ import annotations

import os

from token_vetting.models import CheckRecord, CheckStatus, Holder, HolderTrace, Outcome, Severity
from token_vetting.orchestrator import RunSummary
from token_vetting.visualizer import Visualizer


def _summary() -> RunSummary:
    checks = [
        CheckRecord("p1", "HONEYPOT_DETECTION", CheckStatus.COMPLETED, Outcome.PASSED, Severity.CRITICAL, score=100),
        CheckRecord("p1", "MINT_AUTHORITY", CheckStatus.SKIPPED, Outcome.UNDECIDABLE, Severity.CRITICAL),
    ]
    return RunSummary("p1", 100, None, 100, None, checks=checks)


class TestVisualizer:
    def test_generate_all_writes_three_charts(self, tmp_path):
        paths = Visualizer(str(tmp_path)).generate_all(_summary())
        assert sorted(os.path.basename(p) for p in paths) == ["check_outcomes.png", "holder_clusters.png", "scores.png"]
        assert all(os.path.exists(p) for p in paths)

    def test_holder_clusters_chart(self, tmp_path):
        traces = [
            HolderTrace(Holder("wallet_a", 10.0, 20.0), cluster_id=1),
            HolderTrace(Holder("wallet_b", 5.0, 10.0)),
        ]
        path = Visualizer(str(tmp_path)).plot_holder_clusters(traces)
        assert os.path.exists(path)

    def test_failing_chart_is_skipped(self, tmp_path, mocker):
        viz = Visualizer(str(tmp_path))
        mocker.patch.object(viz, "plot_scores", side_effect=RuntimeError("no display"))
        paths = viz.generate_all(_summary())
        assert len(paths) == 2
