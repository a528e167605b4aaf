"""
Visualizer – generates PNG charts for a finished vetting run.
Uses matplotlib with the non-interactive Agg backend.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from token_vetting.models import CheckRecord, CheckStatus, HolderTrace, Outcome
from token_vetting.taxonomy import lookup_auto

logger = logging.getLogger(__name__)


def _get_matplotlib():
    import matplotlib
    matplotlib.use("Agg")  # non-interactive backend
    import matplotlib.pyplot as plt
    return plt


class Visualizer:
    """Generates PNG charts and saves them to output_dir."""

    _COLORS = {
        "passed": "#4CAF50",
        "failed": "#F44336",
        "skipped": "#9E9E9E",
        "error": "#FF9800",
        "holder": "#2196F3",
        "risk_low": "#4CAF50",
        "risk_medium": "#FF9800",
        "risk_high": "#F44336",
        "risk_extreme": "#B71C1C",
        "bg": "#1e1e2e",
        "fg": "#cdd6f4",
        "grid": "#313244",
    }
    _CLUSTER_COLORS = ["#9C27B0", "#FF9800", "#E91E63", "#00BCD4", "#CDDC39", "#795548"]

    def __init__(self, output_dir: str = "./output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _style(self, ax, title: str) -> None:
        ax.set_facecolor(self._COLORS["bg"])
        ax.set_title(title, color=self._COLORS["fg"], fontsize=12)
        ax.tick_params(colors=self._COLORS["fg"])
        ax.spines[:].set_color(self._COLORS["grid"])
        ax.set_axisbelow(True)

    def _save(self, plt, fig, filename: str) -> str:
        out_path = str(self.output_dir / filename)
        fig.savefig(out_path, bbox_inches="tight", dpi=120, facecolor=self._COLORS["bg"])
        plt.close(fig)
        return out_path

    # ------------------------------------------------------------------
    # Individual chart methods
    # ------------------------------------------------------------------

    def plot_check_outcomes(self, checks: list[CheckRecord]) -> str:
        """Stacked horizontal bars: passed/failed/skipped/errored checks per source."""
        plt = _get_matplotlib()

        counts: dict[str, Counter] = {}
        for check in checks:
            spec = lookup_auto(check.check_type)
            source = spec.source if spec else "other"
            if check.status is CheckStatus.FAILED:
                bucket = "error"
            elif check.status is CheckStatus.SKIPPED:
                bucket = "skipped"
            else:
                bucket = "passed" if check.outcome is Outcome.PASSED else "failed"
            counts.setdefault(source, Counter())[bucket] += 1

        sources = sorted(counts) or ["No Data"]
        fig, ax = plt.subplots(figsize=(9, max(3, len(sources) * 0.6 + 1)), facecolor=self._COLORS["bg"])

        left = [0] * len(sources)
        for bucket, label in (("passed", "Passed"), ("failed", "Failed"), ("skipped", "Skipped"),
                              ("error", "Source error")):
            widths = [counts.get(s, Counter())[bucket] for s in sources]
            ax.barh(sources, widths, left=left, color=self._COLORS[bucket], edgecolor="none", label=label)
            left = [a + b for a, b in zip(left, widths)]

        self._style(ax, "Automatic Check Outcomes by Source")
        ax.set_xlabel("Checks", color=self._COLORS["fg"], fontsize=10)
        ax.xaxis.grid(True, color=self._COLORS["grid"], linestyle="--", alpha=0.5)
        ax.legend(facecolor=self._COLORS["bg"], labelcolor=self._COLORS["fg"], fontsize=8)
        return self._save(plt, fig, "check_outcomes.png")

    def plot_holder_clusters(self, traces: list[HolderTrace]) -> str:
        """Bar chart: sampled holder percentages, coloured by funding cluster."""
        plt = _get_matplotlib()

        fig, ax = plt.subplots(figsize=(9, 5), facecolor=self._COLORS["bg"])
        if not traces:
            ax.set_facecolor(self._COLORS["bg"])
            ax.text(
                0.5, 0.5, "No holder data", ha="center", va="center",
                transform=ax.transAxes, color=self._COLORS["fg"], fontsize=12,
            )
            ax.set_title("Top Holders by Funding Cluster", color=self._COLORS["fg"], fontsize=13)
            ax.axis("off")
            return self._save(plt, fig, "holder_clusters.png")

        labels = [t.address[:8] + "…" for t in traces]
        percentages = [t.holder.percentage for t in traces]
        colors = [
            self._CLUSTER_COLORS[(t.cluster_id - 1) % len(self._CLUSTER_COLORS)]
            if t.cluster_id else self._COLORS["holder"]
            for t in traces
        ]

        bars = ax.bar(labels, percentages, color=colors, edgecolor="none")
        ax.bar_label(bars, fmt="%.1f%%", color=self._COLORS["fg"], fontsize=8, padding=3)
        self._style(ax, "Top Holders by Funding Cluster (blue = unclustered)")
        ax.set_xlabel("Wallet Address (truncated)", color=self._COLORS["fg"], fontsize=10)
        ax.set_ylabel("Supply %", color=self._COLORS["fg"], fontsize=10)
        ax.yaxis.grid(True, color=self._COLORS["grid"], linestyle="--", alpha=0.5)
        plt.xticks(rotation=30, ha="right")
        return self._save(plt, fig, "holder_clusters.png")

    def plot_scores(self, automatic: int | None, manual: int | None, overall: int | None) -> str:
        """Bar chart of the three scores against the risk tier thresholds."""
        plt = _get_matplotlib()

        names = ["Automatic", "Manual", "Overall"]
        values = [automatic or 0, manual or 0, overall or 0]

        def tier_color(score: int) -> str:
            if score >= 80:
                return self._COLORS["risk_low"]
            if score >= 60:
                return self._COLORS["risk_medium"]
            if score >= 40:
                return self._COLORS["risk_high"]
            return self._COLORS["risk_extreme"]

        fig, ax = plt.subplots(figsize=(6, 4), facecolor=self._COLORS["bg"])
        bars = ax.bar(names, values, color=[tier_color(v) for v in values], edgecolor="none")
        ax.bar_label(
            bars,
            labels=[str(v) if v is not None else "n/a" for v in (automatic, manual, overall)],
            color=self._COLORS["fg"], fontsize=9, padding=3,
        )
        for threshold in (40, 60, 80):
            ax.axhline(threshold, color=self._COLORS["grid"], linestyle="--", linewidth=1)
        ax.set_ylim(0, 105)
        self._style(ax, "Vetting Scores")
        return self._save(plt, fig, "scores.png")

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def generate_all(self, summary) -> list[str]:
        """Generate all charts for a RunSummary and return the file paths."""
        traces = summary.holder_analysis.traces if summary.holder_analysis else []
        charts = [
            ("check outcomes", lambda: self.plot_check_outcomes(summary.checks)),
            ("holder clusters", lambda: self.plot_holder_clusters(traces)),
            ("scores", lambda: self.plot_scores(
                summary.automatic_score, summary.manual_score, summary.overall_score
            )),
        ]
        paths: list[str] = []
        for name, draw in charts:
            try:
                paths.append(draw())
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s chart failed: %s", name, exc)
        return paths
