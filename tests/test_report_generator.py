"""
Unit tests for the report generator and the CLI argument helpers.
"""

from __future__ import annotations

import json

import pytest
from rich.console import Console

import vet_token
from token_vetting.models import (
    CheckRecord,
    CheckStatus,
    FlagSource,
    Outcome,
    RedFlag,
    RiskLevel,
    Severity,
    SourceError,
    Token,
)
from token_vetting.orchestrator import RunSummary
from token_vetting.report_generator import ReportGenerator

TOKEN = Token(id="t1", chain="ETHEREUM", contract_address="0xAbC0000000000000000000000000000000000001",
              name="Test Token", symbol="TST")


def _summary(**overrides) -> RunSummary:
    fields = dict(
        process_id="p1",
        automatic_score=55,
        manual_score=None,
        overall_score=55,
        risk_level=RiskLevel.HIGH,
        checks=[
            CheckRecord("p1", "HONEYPOT_DETECTION", CheckStatus.COMPLETED, Outcome.FAILED, Severity.CRITICAL,
                        details="Token is a honeypot", score=0),
            CheckRecord("p1", "MINT_AUTHORITY", CheckStatus.SKIPPED, Outcome.UNDECIDABLE, Severity.CRITICAL,
                        details="Skipped - not supported on this chain"),
            CheckRecord("p1", "HOLDER_COUNT", CheckStatus.FAILED, Outcome.UNDECIDABLE, Severity.MEDIUM,
                        details="Check failed: HTTP 500"),
        ],
        red_flags=[RedFlag("Honeypot Detection", Severity.CRITICAL, FlagSource.AUTOMATIC,
                           "HONEYPOT_DETECTION", "Token is a honeypot")],
        errors=[SourceError("goplus", "HTTP 500")],
        progress={"automatic": {"completed": 1, "total": 35, "percentage": 3}},
    )
    fields.update(overrides)
    return RunSummary(**fields)


class TestBuildReport:
    def test_sections(self):
        report = ReportGenerator.build_report(TOKEN, _summary(), ["chart.png"])
        assert report["token"]["symbol"] == "TST"
        assert report["scores"] == {"automatic": 55, "manual": None, "overall": 55, "risk_level": "HIGH"}
        assert [c["status"] for c in report["checks"]] == ["COMPLETED", "SKIPPED", "FAILED"]
        assert report["red_flags"][0]["check_type"] == "HONEYPOT_DETECTION"
        assert report["errors"] == [{"source": "goplus", "error": "HTTP 500", "check": None}]
        assert report["clusters"] == []
        assert report["chart_files"] == ["chart.png"]

    def test_unscored_process(self):
        report = ReportGenerator.build_report(
            TOKEN, _summary(automatic_score=None, overall_score=None, risk_level=None, checks=[])
        )
        assert report["scores"]["risk_level"] is None


class TestJsonReport:
    def test_writes_parseable_file(self, tmp_path):
        path = ReportGenerator(str(tmp_path)).generate_json_report(TOKEN, _summary())
        assert path.endswith(".json")
        assert "report_0xAbC000_" in path
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        assert data["process_id"] == "p1"


class TestDashboard:
    def test_renders_all_sections(self, tmp_path):
        console = Console(record=True, width=160)
        ReportGenerator(str(tmp_path)).print_terminal_dashboard(TOKEN, _summary(), console=console)
        text = console.export_text()
        assert "Test Token" in text
        assert "HIGH" in text
        assert "SKIPPED" in text
        assert "ERROR" in text
        assert "Red Flags" in text
        assert "Source Errors" in text


class TestCliHelpers:
    def test_parse_manual(self):
        assert vet_token._parse_manual(["team_kyc=pass", "AUDIT_REVIEW=FAIL"]) == [
            ("TEAM_KYC", True),
            ("AUDIT_REVIEW", False),
        ]

    def test_parse_manual_rejects_other_verdicts(self):
        with pytest.raises(ValueError):
            vet_token._parse_manual(["TEAM_KYC=maybe"])

    def test_chain_is_case_insensitive(self):
        args = vet_token._build_parser().parse_args(["0xabc", "--chain", "base"])
        assert args.chain == "BASE"

    def test_unknown_chain_rejected(self):
        with pytest.raises(SystemExit):
            vet_token._build_parser().parse_args(["0xabc", "--chain", "dogechain"])
