#!/usr/bin/env python3
"""
Token Vetting – CLI Entry Point

Usage:
    python vet_token.py <token_address> --chain SOLANA
    python vet_token.py <token_address> --chain ETHEREUM --output-dir ./my_reports
    python vet_token.py <token_address> --chain BASE --no-charts
    python vet_token.py <token_address> --chain SOLANA --json-only
    python vet_token.py <token_address> --chain SOLANA --manual TEAM_KYC=pass --manual AUDIT_REVIEW=fail
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from rich import print as rprint

from token_vetting.chains import Chain


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vet_token",
        description="Token vetting – score a token's security, market and holder risk.",
    )
    parser.add_argument("token_address", help="Token contract or mint address to vet")
    parser.add_argument(
        "--chain",
        required=True,
        type=str.upper,
        choices=[c.value for c in Chain],
        help="Chain the token lives on",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        metavar="DIR",
        help="Override the output directory for reports and charts (default: from .env or ./output)",
    )
    parser.add_argument("--no-charts", action="store_true", help="Skip chart generation")
    parser.add_argument(
        "--json-only",
        action="store_true",
        help="Only write the JSON report; skip the terminal dashboard",
    )
    parser.add_argument(
        "--manual",
        action="append",
        default=[],
        metavar="CHECK=pass|fail",
        help="Record a manual review verdict before scoring (repeatable)",
    )
    return parser


def _parse_manual(values: list[str]) -> list[tuple[str, bool]]:
    verdicts = []
    for value in values:
        check_type, _, verdict = value.partition("=")
        if verdict.lower() not in ("pass", "fail"):
            raise ValueError(f"Manual verdict must be CHECK=pass or CHECK=fail, got '{value}'")
        verdicts.append((check_type.strip().upper(), verdict.lower() == "pass"))
    return verdicts


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    token_address = args.token_address.strip()

    # ── Load configuration ───────────────────────────────────────────────
    from token_vetting.config import configure_logging, get_config
    try:
        cfg = get_config()
        manual = _parse_manual(args.manual)
    except (EnvironmentError, ValueError) as exc:
        rprint(f"[bold red]Configuration error:[/bold red] {exc}")
        return 1

    configure_logging(cfg.log_level)
    output_dir = args.output_dir or cfg.output_dir

    # ── Wire the core ────────────────────────────────────────────────────
    from token_vetting.chain_lookup import lookup_for_chain
    from token_vetting.data_fetcher import SourceClients
    from token_vetting.exceptions import VettingError
    from token_vetting.holder_analyzer import HolderAnalyzer
    from token_vetting.orchestrator import CheckOrchestrator
    from token_vetting.repository import InMemoryChecksRepository

    repository = InMemoryChecksRepository()
    analyzer = HolderAnalyzer(
        lambda chain: lookup_for_chain(chain, cfg),
        sample_size=cfg.holder_sample_size,
        max_concurrency=cfg.holder_lookup_concurrency,
    )
    orchestrator = CheckOrchestrator(repository, SourceClients.from_config(cfg), analyzer)

    token = repository.create_token(args.chain, token_address)
    process = repository.create_process(token.id)

    # ── Run checks ───────────────────────────────────────────────────────
    rprint(f"\n[bold cyan]🔍 Vetting token:[/bold cyan] [yellow]{token_address}[/yellow] on {args.chain}\n")
    try:
        for check_type, passed in manual:
            orchestrator.record_manual_check(process.id, check_type, passed, reviewer="cli")
        summary = asyncio.run(orchestrator.run_checks(process.id))
    except VettingError as exc:
        rprint(f"[bold red]Error:[/bold red] {exc}")
        return 1

    token = repository.get_token(token.id)

    # ── Visualisations ───────────────────────────────────────────────────
    chart_paths: list[str] = []
    if not args.no_charts:
        rprint("[cyan]→ Generating charts...[/cyan]")
        from token_vetting.visualizer import Visualizer
        chart_paths = Visualizer(output_dir).generate_all(summary)
        for p in chart_paths:
            rprint(f"  [dim]Chart saved:[/dim] {p}")

    # ── Reports ──────────────────────────────────────────────────────────
    from token_vetting.report_generator import ReportGenerator
    reporter = ReportGenerator(output_dir)
    json_path = reporter.generate_json_report(token, summary, chart_paths)
    rprint(f"\n[green]✓ JSON report:[/green] {json_path}")

    if not args.json_only:
        rprint("")
        reporter.print_terminal_dashboard(token, summary)

    # ── Exit code ────────────────────────────────────────────────────────
    if summary.risk_level is not None and summary.risk_level.value == "EXTREME":
        rprint("\n[bold white on red] ⛔  EXTREME RISK – do not list this token [/bold white on red]\n")
        return 1

    rprint("\n[bold green]✓ Vetting complete.[/bold green]\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
