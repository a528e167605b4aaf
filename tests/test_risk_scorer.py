"""
Unit tests for RiskScorer.
"""

from __future__ import annotations

import pytest

from token_vetting.exceptions import InvalidCheckStateError
from token_vetting.models import (
    CheckRecord,
    CheckStatus,
    FlagSource,
    Outcome,
    RiskLevel,
    Severity,
)
from token_vetting.risk_scorer import RiskScorer
from token_vetting.taxonomy import AutoCheck, ManualCheck


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

def _check(check_type: str, passed: bool | None, status: CheckStatus = CheckStatus.COMPLETED,
           severity: Severity | None = None, details: str = "", notes: str | None = None) -> CheckRecord:
    spec = AutoCheck.__members__.get(check_type) or ManualCheck.__members__.get(check_type)
    return CheckRecord(
        process_id="p1",
        check_type=check_type,
        status=status,
        outcome=Outcome.from_passed(passed),
        severity=severity or (spec.severity if spec else Severity.LOW),
        details=details,
        notes=notes,
    )


# ---------------------------------------------------------------------------
# Weighted score
# ---------------------------------------------------------------------------

class TestWeightedScore:
    def test_no_checks_returns_none(self):
        assert RiskScorer.calculate_automatic_score([]) is None

    def test_only_skipped_and_failed_rows_returns_none(self):
        checks = [
            _check("HONEYPOT_DETECTION", None, status=CheckStatus.SKIPPED),
            _check("MINT_FUNCTION", None, status=CheckStatus.FAILED),
        ]
        assert RiskScorer.calculate_automatic_score(checks) is None

    def test_unknown_check_types_are_ignored(self):
        checks = [_check("NOT_A_REAL_CHECK", True)]
        assert RiskScorer.calculate_automatic_score(checks) is None

    def test_all_pass_scores_100(self):
        checks = [_check(name, True) for name in ("HONEYPOT_DETECTION", "MINT_FUNCTION", "HAS_TELEGRAM")]
        assert RiskScorer.calculate_automatic_score(checks) == 100

    def test_all_fail_scores_0(self):
        checks = [_check(name, False) for name in ("HONEYPOT_DETECTION", "MINT_FUNCTION", "HAS_TELEGRAM")]
        assert RiskScorer.calculate_automatic_score(checks) == 0

    def test_honeypot_pass_mint_fail_scores_64(self):
        # 1.0 * 1.0 earned out of 1.0 + 0.75 * 0.75 total
        checks = [_check("HONEYPOT_DETECTION", True), _check("MINT_FUNCTION", False)]
        assert RiskScorer.calculate_automatic_score(checks) == 64

    def test_skipped_rows_do_not_dilute_score(self):
        checks = [
            _check("HONEYPOT_DETECTION", True),
            _check("CONTRACT_VERIFIED", None, status=CheckStatus.SKIPPED),
        ]
        assert RiskScorer.calculate_automatic_score(checks) == 100

    def test_manual_score_uses_manual_taxonomy(self):
        checks = [_check("TEAM_KYC", True), _check("ROADMAP_ASSESSMENT", False)]
        # 1.0 earned of 1.0 + 0.25 * 0.25
        assert RiskScorer.calculate_manual_score(checks) == 94
        assert RiskScorer.calculate_automatic_score(checks) is None


# ---------------------------------------------------------------------------
# Overall score and risk level
# ---------------------------------------------------------------------------

class TestOverallScore:
    @pytest.mark.parametrize(
        "auto,manual,expected",
        [(80, None, 80), (None, 70, 70), (80, 70, 74), (None, None, None), (0, 100, 60)],
    )
    def test_blend(self, auto, manual, expected):
        assert RiskScorer.calculate_overall_score(auto, manual) == expected

    def test_rounds_half_up(self):
        # 0.4 * 75 + 0.6 * 72 = 73.2 ; 0.4 * 76 + 0.6 * 72 = 73.6
        assert RiskScorer.calculate_overall_score(75, 72) == 73
        assert RiskScorer.calculate_overall_score(76, 72) == 74


class TestRiskLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (100, RiskLevel.LOW),
            (80, RiskLevel.LOW),
            (79, RiskLevel.MEDIUM),
            (60, RiskLevel.MEDIUM),
            (59, RiskLevel.HIGH),
            (40, RiskLevel.HIGH),
            (39, RiskLevel.EXTREME),
            (0, RiskLevel.EXTREME),
        ],
    )
    def test_thresholds(self, score, level):
        assert RiskScorer.determine_risk_level(score) is level

    def test_none_score_has_no_level(self):
        assert RiskScorer.determine_risk_level(None) is None


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------

class TestRedFlags:
    def test_failed_high_and_critical_checks_flagged(self):
        checks = [
            _check("HONEYPOT_DETECTION", False, details="Token detected as honeypot - cannot sell"),
            _check("MINT_FUNCTION", False),
            _check("PROXY_CONTRACT", False),  # MEDIUM: not flagged
            _check("HIDDEN_OWNER", True),
        ]
        flags = RiskScorer.generate_red_flags(checks)
        assert [f.check_type for f in flags] == ["HONEYPOT_DETECTION", "MINT_FUNCTION"]
        assert flags[0].flag == "Honeypot Detection"
        assert flags[0].severity is Severity.CRITICAL
        assert flags[0].source is FlagSource.AUTOMATIC
        assert flags[0].details == "Token detected as honeypot - cannot sell"

    def test_skipped_checks_never_flagged(self):
        checks = [_check("HONEYPOT_DETECTION", None, status=CheckStatus.SKIPPED)]
        assert RiskScorer.generate_red_flags(checks) == []

    def test_row_severity_decides_flagging(self):
        checks = [_check("HAS_TWITTER", False, severity=Severity.HIGH)]
        assert len(RiskScorer.generate_red_flags(checks)) == 1

    def test_manual_flag_carries_notes(self):
        manual = [_check("AUDIT_REVIEW", False, notes="No audit provided")]
        flags = RiskScorer.generate_red_flags([], manual)
        assert flags[0].source is FlagSource.MANUAL
        assert flags[0].details == "No audit provided"


class TestGreenFlags:
    def test_only_allow_listed_checks(self):
        automatic = [_check("HONEYPOT_DETECTION", True), _check("MINT_FUNCTION", True)]
        manual = [_check("TEAM_KYC", True), _check("WHITEPAPER_REVIEW", True)]
        flags = RiskScorer.generate_green_flags(automatic, manual)
        assert [f.flag for f in flags] == ["Honeypot Detection - Passed", "Team KYC/Doxxed - Verified"]

    def test_failed_notable_check_is_not_green(self):
        assert RiskScorer.generate_green_flags([_check("CONTRACT_VERIFIED", False)]) == []


# ---------------------------------------------------------------------------
# ScoreCard / progress
# ---------------------------------------------------------------------------

class TestScoreProcess:
    def test_bundles_everything(self):
        card = RiskScorer().score_process(
            [_check("HONEYPOT_DETECTION", True), _check("MINT_FUNCTION", False)],
            [],
        )
        assert card.automatic_score == 64
        assert card.manual_score is None
        assert card.overall_score == 64
        assert card.risk_level is RiskLevel.MEDIUM
        assert [f.check_type for f in card.red_flags] == ["MINT_FUNCTION"]
        assert [f.check_type for f in card.green_flags] == ["HONEYPOT_DETECTION"]

    def test_is_deterministic(self):
        checks = [_check("HONEYPOT_DETECTION", True), _check("BUY_TAX_ANALYSIS", False)]
        scorer = RiskScorer()
        assert scorer.score_process(checks) == scorer.score_process(checks)

    def test_progress_counts_completed_rows(self):
        automatic = [_check("HONEYPOT_DETECTION", True), _check("MINT_FUNCTION", None, CheckStatus.SKIPPED)]
        progress = RiskScorer.calculate_completion_progress(automatic, [_check("TEAM_KYC", True)])
        assert progress["automatic"]["completed"] == 1
        assert progress["automatic"]["total"] == len(AutoCheck)
        assert progress["manual"] == {"completed": 1, "total": 10, "percentage": 10}
        assert progress["overall"]["completed"] == 2


class TestCheckRecordInvariant:
    def test_completed_undecidable_rejected(self):
        with pytest.raises(InvalidCheckStateError):
            _check("HONEYPOT_DETECTION", None, status=CheckStatus.COMPLETED)

    def test_invalid_state_is_a_value_error(self):
        with pytest.raises(ValueError):
            _check("HONEYPOT_DETECTION", None)
