"""
Report generator – produces the JSON report and the rich terminal dashboard
for a finished vetting run.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from token_vetting.models import CheckStatus, Outcome, Token
from token_vetting.taxonomy import lookup_auto


class ReportGenerator:
    """Generates vetting reports as JSON files and terminal dashboards."""

    _RISK_STYLES = {
        "LOW": "bold green",
        "MEDIUM": "bold yellow",
        "HIGH": "bold red",
        "EXTREME": "bold white on red",
    }

    def __init__(self, output_dir: str = "./output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # JSON report
    # ------------------------------------------------------------------

    @staticmethod
    def build_report(token: Token, summary, chart_paths: list[str] = ()) -> dict:
        analysis = summary.holder_analysis
        return {
            "generated_at": datetime.now(tz=timezone.utc).isoformat(),
            "token": {
                "chain": token.chain,
                "contract_address": token.contract_address,
                "name": token.name,
                "symbol": token.symbol,
            },
            "process_id": summary.process_id,
            "scores": {
                "automatic": summary.automatic_score,
                "manual": summary.manual_score,
                "overall": summary.overall_score,
                "risk_level": summary.risk_level.value if summary.risk_level else None,
            },
            "progress": summary.progress,
            "checks": [
                {
                    "check_type": c.check_type,
                    "status": c.status.value,
                    "outcome": c.outcome.value,
                    "severity": c.severity.value,
                    "score": c.score,
                    "details": c.details,
                }
                for c in summary.checks
            ],
            "red_flags": [
                {"flag": f.flag, "severity": f.severity.value, "source": f.source.value,
                 "check_type": f.check_type, "details": f.details}
                for f in summary.red_flags
            ],
            "green_flags": [
                {"flag": f.flag, "source": f.source.value, "check_type": f.check_type}
                for f in summary.green_flags
            ],
            "clusters": [
                {"funding_source": c.funding_source, "wallets": c.wallets}
                for c in (analysis.clusters if analysis else [])
            ],
            "errors": [e.to_dict() for e in summary.errors],
            "chart_files": list(chart_paths),
        }

    def generate_json_report(self, token: Token, summary, chart_paths: list[str] = ()) -> str:
        """Write a JSON report and return the file path."""
        report = self.build_report(token, summary, chart_paths)
        filename = f"report_{token.contract_address[:8]}_{self._ts()}.json"
        out_path = self.output_dir / filename
        out_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
        return str(out_path)

    # ------------------------------------------------------------------
    # Terminal dashboard (rich)
    # ------------------------------------------------------------------

    def print_terminal_dashboard(self, token: Token, summary, console: Console | None = None) -> None:
        """Print a rich formatted terminal dashboard."""
        console = console or Console()

        risk_level = summary.risk_level.value if summary.risk_level else "UNSCORED"
        risk_style = self._RISK_STYLES.get(risk_level, "white")

        def fmt(score) -> str:
            return "n/a" if score is None else f"{score}/100"

        console.print(
            Panel(
                f"[white]{token.name or 'Unknown'}[/white] ([yellow]{token.symbol or '???'}[/yellow])"
                f"  [dim]{token.chain}[/dim]\n"
                f"[dim]{token.contract_address}[/dim]",
                title="Token Vetting Report",
                border_style="cyan",
            )
        )
        console.print(
            Panel(
                f"[{risk_style}]Overall: {fmt(summary.overall_score)}  ──  {risk_level}[/{risk_style}]\n"
                f"Automatic: {fmt(summary.automatic_score)}  │  Manual: {fmt(summary.manual_score)}",
                title="Risk Assessment",
                border_style="red" if risk_level in ("HIGH", "EXTREME") else "yellow",
            )
        )

        table = Table(title="Automatic Checks", box=box.ROUNDED, border_style="dim")
        table.add_column("Source", style="dim")
        table.add_column("Check", style="white")
        table.add_column("Result", justify="center")
        table.add_column("Severity", justify="center")
        table.add_column("Details", style="dim")
        for check in summary.checks:
            spec = lookup_auto(check.check_type)
            table.add_row(
                spec.source if spec else "",
                spec.label if spec else check.check_type,
                self._result_cell(check),
                check.severity.value,
                check.details,
            )
        console.print(table)

        if summary.red_flags:
            red = Table(title="Red Flags", box=box.ROUNDED, border_style="red")
            red.add_column("Flag", style="bold red")
            red.add_column("Severity", justify="center")
            red.add_column("Details", style="dim")
            for flag in summary.red_flags:
                red.add_row(flag.flag, flag.severity.value, flag.details or "")
            console.print(red)

        if summary.green_flags:
            console.print(
                Panel("\n".join(f"[green]✓ {f.flag}[/green]" for f in summary.green_flags),
                      title="Green Flags", border_style="green")
            )

        if summary.errors:
            errors = Table(title="Source Errors", box=box.ROUNDED, border_style="yellow")
            errors.add_column("Source")
            errors.add_column("Check")
            errors.add_column("Error", style="dim")
            for err in summary.errors:
                errors.add_row(err.source, err.check or "-", err.error)
            console.print(errors)

    @staticmethod
    def _result_cell(check) -> str:
        if check.status is CheckStatus.FAILED:
            return "[yellow]ERROR[/yellow]"
        if check.status is CheckStatus.SKIPPED:
            return "[dim]SKIPPED[/dim]"
        if check.outcome is Outcome.PASSED:
            return "[green]PASS ✓[/green]"
        return "[red]FAIL ✗[/red]"

    @staticmethod
    def _ts() -> str:
        return datetime.now().strftime("%Y%m%d_%H%M%S")
