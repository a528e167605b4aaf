"""
Risk scorer – turns stored check results into weighted scores, a risk tier,
and red/green flags.

Everything here is pure: the same rows always produce the same ScoreCard.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from token_vetting.models import (
    CheckRecord,
    CheckStatus,
    FlagSource,
    GreenFlag,
    Outcome,
    RedFlag,
    RiskLevel,
    Severity,
)
from token_vetting.taxonomy import (
    NOTABLE_AUTO_CHECKS,
    NOTABLE_MANUAL_CHECKS,
    SEVERITY_WEIGHTS,
    AutoCheck,
    ManualCheck,
    lookup_auto,
    lookup_manual,
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ScoreCard:
    automatic_score: Optional[int]
    manual_score: Optional[int]
    overall_score: Optional[int]
    risk_level: Optional[RiskLevel]
    red_flags: list = field(default_factory=list)
    green_flags: list = field(default_factory=list)
    progress: dict = field(default_factory=dict)


class RiskScorer:
    """Scores a vetting process from its automatic and manual check rows."""

    AUTO_WEIGHT = 0.4
    MANUAL_WEIGHT = 0.6

    # Minimum score for each tier, checked top-down
    RISK_THRESHOLDS = [
        (80, RiskLevel.LOW),
        (60, RiskLevel.MEDIUM),
        (40, RiskLevel.HIGH),
    ]

    FLAGGED_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score_process(
        self,
        automatic_checks: Iterable[CheckRecord],
        manual_checks: Iterable[CheckRecord] = (),
    ) -> ScoreCard:
        """Compute every derived value of a process in one pass."""
        automatic_checks = list(automatic_checks)
        manual_checks = list(manual_checks)

        automatic_score = self.calculate_automatic_score(automatic_checks)
        manual_score = self.calculate_manual_score(manual_checks)
        overall_score = self.calculate_overall_score(automatic_score, manual_score)

        return ScoreCard(
            automatic_score=automatic_score,
            manual_score=manual_score,
            overall_score=overall_score,
            risk_level=self.determine_risk_level(overall_score),
            red_flags=self.generate_red_flags(automatic_checks, manual_checks),
            green_flags=self.generate_green_flags(automatic_checks, manual_checks),
            progress=self.calculate_completion_progress(automatic_checks, manual_checks),
        )

    @staticmethod
    def calculate_weighted_score(
        checks: Iterable[CheckRecord],
        lookup: Callable[[str], Optional[AutoCheck | ManualCheck]],
    ) -> Optional[int]:
        """
        Weighted pass ratio over completed checks, scaled to 0-100.

        Each completed check whose type the taxonomy knows contributes
        ``weight * severity_weight`` to the total; passed checks contribute
        the same amount to the earned weight. Returns None when nothing
        counted, never 0.
        """
        total_weight = 0.0
        earned_weight = 0.0

        for check in checks:
            if check.status is not CheckStatus.COMPLETED:
                continue
            spec = lookup(check.check_type)
            if spec is None:
                continue

            weight = spec.weight * SEVERITY_WEIGHTS[spec.severity]
            total_weight += weight
            if check.outcome is Outcome.PASSED:
                earned_weight += weight

        if total_weight == 0:
            return None
        return _round_half_up(earned_weight / total_weight * 100)

    @classmethod
    def calculate_automatic_score(cls, checks: Iterable[CheckRecord]) -> Optional[int]:
        return cls.calculate_weighted_score(checks, lookup_auto)

    @classmethod
    def calculate_manual_score(cls, checks: Iterable[CheckRecord]) -> Optional[int]:
        return cls.calculate_weighted_score(checks, lookup_manual)

    @classmethod
    def calculate_overall_score(
        cls, automatic_score: Optional[int], manual_score: Optional[int]
    ) -> Optional[int]:
        """Blend 40 % automatic / 60 % manual, or pass through whichever exists."""
        if automatic_score is not None and manual_score is not None:
            return _round_half_up(
                automatic_score * cls.AUTO_WEIGHT + manual_score * cls.MANUAL_WEIGHT
            )
        if automatic_score is not None:
            return automatic_score
        return manual_score

    @classmethod
    def determine_risk_level(cls, score: Optional[int]) -> Optional[RiskLevel]:
        if score is None:
            return None
        for threshold, level in cls.RISK_THRESHOLDS:
            if score >= threshold:
                return level
        return RiskLevel.EXTREME

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    @classmethod
    def generate_red_flags(
        cls,
        automatic_checks: Iterable[CheckRecord] = (),
        manual_checks: Iterable[CheckRecord] = (),
    ) -> list[RedFlag]:
        """One red flag per completed, failed CRITICAL/HIGH check."""
        red_flags: list[RedFlag] = []
        sources = (
            (automatic_checks, lookup_auto, FlagSource.AUTOMATIC),
            (manual_checks, lookup_manual, FlagSource.MANUAL),
        )
        for checks, lookup, source in sources:
            for check in checks:
                if check.status is not CheckStatus.COMPLETED:
                    continue
                if check.outcome is not Outcome.FAILED:
                    continue
                spec = lookup(check.check_type)
                if spec is None or check.severity not in cls.FLAGGED_SEVERITIES:
                    continue

                details = check.notes if source is FlagSource.MANUAL else check.details
                red_flags.append(
                    RedFlag(
                        flag=spec.label,
                        severity=check.severity,
                        source=source,
                        check_type=check.check_type,
                        details=details,
                    )
                )
        return red_flags

    @staticmethod
    def generate_green_flags(
        automatic_checks: Iterable[CheckRecord] = (),
        manual_checks: Iterable[CheckRecord] = (),
    ) -> list[GreenFlag]:
        """Green flags only for the allow-listed notable checks that passed."""
        green_flags: list[GreenFlag] = []
        sources = (
            (automatic_checks, lookup_auto, NOTABLE_AUTO_CHECKS, FlagSource.AUTOMATIC, "Passed"),
            (manual_checks, lookup_manual, NOTABLE_MANUAL_CHECKS, FlagSource.MANUAL, "Verified"),
        )
        for checks, lookup, notable, source, suffix in sources:
            for check in checks:
                if check.status is not CheckStatus.COMPLETED:
                    continue
                if check.outcome is not Outcome.PASSED:
                    continue
                spec = lookup(check.check_type)
                if spec not in notable:
                    continue
                green_flags.append(
                    GreenFlag(
                        flag=f"{spec.label} - {suffix}",
                        source=source,
                        check_type=check.check_type,
                    )
                )
        return green_flags

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_completion_progress(
        automatic_checks: Iterable[CheckRecord] = (),
        manual_checks: Iterable[CheckRecord] = (),
    ) -> dict:
        auto_total = len(AutoCheck)
        manual_total = len(ManualCheck)
        auto_done = sum(1 for c in automatic_checks if c.status is CheckStatus.COMPLETED)
        manual_done = sum(1 for c in manual_checks if c.status is CheckStatus.COMPLETED)

        def _entry(completed: int, total: int) -> dict:
            return {
                "completed": completed,
                "total": total,
                "percentage": _round_half_up(completed / total * 100),
            }

        return {
            "automatic": _entry(auto_done, auto_total),
            "manual": _entry(manual_done, manual_total),
            "overall": _entry(auto_done + manual_done, auto_total + manual_total),
        }
