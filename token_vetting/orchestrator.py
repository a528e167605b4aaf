"""
Check orchestrator – runs every applicable data source for a token's vetting
process, folds the results into one row per automatic check, persists them
and rescores the process.

A failing source never aborts the run: its checks are stored as FAILED and
the error is reported alongside the scores computed from everything else.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from token_vetting.chains import ChainConfig, get_chain_config
from token_vetting.data_fetcher import SourceClients
from token_vetting.exceptions import (
    ProcessNotFoundError,
    TokenNotFoundError,
    UnknownCheckTypeError,
)
from token_vetting.holder_analyzer import HolderAnalysis, HolderAnalyzer
from token_vetting.models import (
    CheckBundle,
    CheckEntry,
    CheckKind,
    CheckRecord,
    CheckStatus,
    Outcome,
    ProcessStatus,
    RiskLevel,
    SourceError,
    Token,
    VettingProcess,
    utcnow,
)
from token_vetting.parsers import (
    parse_dexscreener_data,
    parse_etherscan_checks,
    parse_goplus_checks,
    parse_jupiter_verified,
    parse_rugcheck_data,
    parse_social_presence,
    skipped_bundle,
)
from token_vetting.repository import ChecksRepository
from token_vetting.risk_scorer import RiskScorer, ScoreCard
from token_vetting.taxonomy import (
    DEXSCREENER,
    ETHERSCAN,
    GOPLUS,
    HOLDER_ANALYSIS,
    JUPITER,
    RUGCHECK,
    SOCIAL,
    AutoCheck,
    ManualCheck,
    checks_for_source,
    lookup_auto,
    lookup_manual,
)

logger = logging.getLogger(__name__)

AUTOMATED_CHECKS_COMPLETED = "AUTOMATED_CHECKS_COMPLETED"
MANUAL_CHECK_COMPLETED = "MANUAL_CHECK_COMPLETED"
SCORES_RECALCULATED = "SCORES_RECALCULATED"


@dataclass
class SourceResult:
    """What one source produced: a bundle, errors, or both (holder analysis)."""

    source: str
    bundle: Optional[CheckBundle] = None
    errors: list = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.bundle is None and bool(self.errors)


@dataclass
class RunSummary:
    process_id: str
    automatic_score: Optional[int]
    manual_score: Optional[int]
    overall_score: Optional[int]
    risk_level: Optional[RiskLevel]
    checks: list = field(default_factory=list)
    red_flags: list = field(default_factory=list)
    green_flags: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    progress: dict = field(default_factory=dict)
    holder_analysis: Optional[HolderAnalysis] = None


class CheckOrchestrator:
    def __init__(
        self,
        repository: ChecksRepository,
        clients: SourceClients,
        holder_analyzer: HolderAnalyzer,
        scorer: RiskScorer | None = None,
    ):
        self.repository = repository
        self.clients = clients
        self.holder_analyzer = holder_analyzer
        self.scorer = scorer or RiskScorer()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_checks(self, process_id: str) -> RunSummary:
        """Run all automatic checks for a process, persist them and rescore."""
        process, token = self._load(process_id)
        chain_config = get_chain_config(token.chain)

        previous_status = process.status
        self.repository.update_process(process_id, status=ProcessStatus.AUTO_RUNNING, started_at=utcnow())
        logger.info("Running automatic checks for %s on %s", token.contract_address, chain_config.name)

        results, analysis = await self._fan_out(token, chain_config)
        results[SOCIAL] = self._social_result(results[DEXSCREENER])

        self._backfill_token(token, results)

        records = self._fold(process_id, list(results.values()))
        for record in records:
            self.repository.upsert_check(process_id, record.check_type, record, CheckKind.AUTOMATIC)

        errors = [err for result in results.values() for err in result.errors]
        for err in errors:
            logger.warning("Source %s failed%s: %s", err.source, f" ({err.check})" if err.check else "", err.error)

        keep_status = previous_status if previous_status.terminal else None
        card = self._rescore(process_id, keep_status=keep_status)

        self.repository.append_activity(
            process_id,
            AUTOMATED_CHECKS_COMPLETED,
            {
                "automatic_score": card.automatic_score,
                "checks_run": len(records),
                "checks_passed": sum(1 for r in records if r.outcome is Outcome.PASSED),
                "error_count": len(errors),
                "errors": [err.to_dict() for err in errors],
            },
        )

        return RunSummary(
            process_id=process_id,
            automatic_score=card.automatic_score,
            manual_score=card.manual_score,
            overall_score=card.overall_score,
            risk_level=card.risk_level,
            checks=self.repository.find_checks(process_id, CheckKind.AUTOMATIC),
            red_flags=card.red_flags,
            green_flags=card.green_flags,
            errors=errors,
            progress=card.progress,
            holder_analysis=analysis,
        )

    def rescore(self, process_id: str) -> ScoreCard:
        """Recompute scores, status and flags from the stored checks. No network calls."""
        self._load(process_id)
        card = self._rescore(process_id)
        self.repository.append_activity(
            process_id,
            SCORES_RECALCULATED,
            {
                "automatic_score": card.automatic_score,
                "manual_score": card.manual_score,
                "overall_score": card.overall_score,
                "risk_level": card.risk_level.value if card.risk_level else None,
            },
        )
        return card

    def record_manual_check(
        self,
        process_id: str,
        check_type: str,
        passed: bool,
        notes: str | None = None,
        reviewer: str | None = None,
    ) -> ScoreCard:
        """Store a reviewer's verdict for one manual check and rescore."""
        spec = lookup_manual(check_type)
        if spec is None:
            raise UnknownCheckTypeError(check_type)
        self._load(process_id)

        record = CheckRecord(
            process_id=process_id,
            check_type=spec.name,
            status=CheckStatus.COMPLETED,
            outcome=Outcome.from_passed(bool(passed)),
            severity=spec.severity,
            details=notes or "",
            score=100 if passed else 0,
            notes=notes,
            reviewer=reviewer,
        )
        self.repository.upsert_check(process_id, spec.name, record, CheckKind.MANUAL)
        card = self._rescore(process_id)

        self.repository.append_activity(
            process_id,
            MANUAL_CHECK_COMPLETED,
            {"check_type": spec.name, "passed": bool(passed), "reviewer": reviewer,
             "manual_score": card.manual_score, "overall_score": card.overall_score},
        )
        return card

    # ------------------------------------------------------------------
    # Loading and scoring
    # ------------------------------------------------------------------

    def _load(self, process_id: str) -> tuple[VettingProcess, Token]:
        process = self.repository.get_process(process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        token = self.repository.get_token(process.token_id)
        if token is None:
            raise TokenNotFoundError(process.token_id)
        return process, token

    def _rescore(self, process_id: str, keep_status: ProcessStatus | None = None) -> ScoreCard:
        automatic = self.repository.find_checks(process_id, CheckKind.AUTOMATIC)
        manual = self.repository.find_checks(process_id, CheckKind.MANUAL)
        card = self.scorer.score_process(automatic, manual)

        process = self.repository.get_process(process_id)
        status = keep_status or self._next_status(process.status, manual)

        self.repository.update_process(
            process_id,
            status=status,
            automatic_score=card.automatic_score,
            manual_score=card.manual_score,
            overall_score=card.overall_score,
            risk_level=card.risk_level,
        )
        self.repository.replace_flags(process_id, card.red_flags, card.green_flags)
        return card

    @staticmethod
    def _next_status(current: ProcessStatus, manual: list[CheckRecord]) -> ProcessStatus:
        if current.terminal:
            return current
        completed = {r.check_type for r in manual if r.status is CheckStatus.COMPLETED}
        if completed >= set(ManualCheck.__members__):
            return ProcessStatus.REVIEW_COMPLETE
        if completed:
            return ProcessStatus.IN_REVIEW
        return ProcessStatus.AUTO_COMPLETE

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _fan_out(
        self, token: Token, chain_config: ChainConfig
    ) -> tuple[dict[str, SourceResult], Optional[HolderAnalysis]]:
        address = token.contract_address
        clients = self.clients

        def goplus() -> Optional[CheckBundle]:
            data = clients.goplus.get_token_security(address, chain_config.goplus_chain_id)
            return parse_goplus_checks(data)

        def dexscreener() -> Optional[CheckBundle]:
            return parse_dexscreener_data(clients.dexscreener.get_token_pairs(address), address)

        def etherscan() -> CheckBundle:
            chain_id = chain_config.etherscan_chain_id
            return parse_etherscan_checks(
                clients.etherscan.get_contract_source(address, chain_id),
                clients.etherscan.get_contract_creation(address, chain_id),
            )

        def rugcheck() -> Optional[CheckBundle]:
            return parse_rugcheck_data(clients.rugcheck.get_report(address))

        def jupiter() -> CheckBundle:
            return parse_jupiter_verified(clients.jupiter.is_verified(address))

        tasks: dict[str, Callable[[], Awaitable]] = {
            GOPLUS: lambda: asyncio.to_thread(goplus),
            DEXSCREENER: lambda: asyncio.to_thread(dexscreener),
            HOLDER_ANALYSIS: lambda: self.holder_analyzer.run(address, chain_config.chain),
        }
        skipped: dict[str, CheckBundle] = {}
        if chain_config.etherscan_chain_id:
            tasks[ETHERSCAN] = lambda: asyncio.to_thread(etherscan)
        else:
            skipped[ETHERSCAN] = skipped_bundle(ETHERSCAN, checks_for_source(ETHERSCAN))
        if chain_config.is_solana:
            tasks[RUGCHECK] = lambda: asyncio.to_thread(rugcheck)
            tasks[JUPITER] = lambda: asyncio.to_thread(jupiter)
        else:
            skipped[RUGCHECK] = skipped_bundle(RUGCHECK, checks_for_source(RUGCHECK))
            skipped[JUPITER] = skipped_bundle(JUPITER, checks_for_source(JUPITER))

        outcomes = await asyncio.gather(*(self._guard(source, fn) for source, fn in tasks.items()))

        results = {source: SourceResult(source, bundle=bundle) for source, bundle in skipped.items()}
        analysis: Optional[HolderAnalysis] = None
        for source, (value, error) in zip(tasks, outcomes):
            result = SourceResult(source, errors=[error] if error else [])
            if isinstance(value, HolderAnalysis):
                analysis = value
                result.bundle = value.bundle
                result.errors.extend(value.errors)
            else:
                result.bundle = value
            results[source] = result
        return results, analysis

    @staticmethod
    async def _guard(source: str, fn: Callable[[], Awaitable]):
        """Await one source, folding any exception into a SourceError."""
        try:
            return await fn(), None
        except Exception as exc:
            return None, SourceError(source, str(exc) or exc.__class__.__name__)

    @staticmethod
    def _social_result(dex: SourceResult) -> SourceResult:
        # Social links live in the DEXScreener payload; nothing is fetched for them
        if dex.failed:
            reason = "; ".join(err.error for err in dex.errors)
            return SourceResult(SOCIAL, errors=[SourceError(SOCIAL, f"DEXScreener data unavailable: {reason}")])
        try:
            bundle = parse_social_presence(dex.bundle.raw_data if dex.bundle else None)
        except Exception as exc:
            error = SourceError(SOCIAL, f"Social presence parse failed: {str(exc) or exc.__class__.__name__}")
            return SourceResult(SOCIAL, errors=[error])
        if bundle is None:
            bundle = skipped_bundle(SOCIAL, checks_for_source(SOCIAL), "No DEXScreener listing to read socials from")
        return SourceResult(SOCIAL, bundle=bundle)

    def _backfill_token(self, token: Token, results: dict[str, SourceResult]) -> None:
        if token.name:
            return
        for source in (GOPLUS, RUGCHECK):
            result = results.get(source)
            bundle = result.bundle if result else None
            if bundle is not None and bundle.token_name:
                self.repository.update_token(token.id, name=bundle.token_name, symbol=bundle.token_symbol)
                return

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    @staticmethod
    def _record(process_id: str, check: AutoCheck, entry: CheckEntry) -> CheckRecord:
        decided = entry.outcome.decided
        raw = {"value": entry.value}
        if isinstance(entry.raw_data, dict):
            raw.update(entry.raw_data)
        elif entry.raw_data is not None:
            raw["data"] = entry.raw_data
        return CheckRecord(
            process_id=process_id,
            check_type=check.name,
            status=CheckStatus.COMPLETED if decided else CheckStatus.SKIPPED,
            outcome=entry.outcome,
            severity=entry.severity or check.severity,
            details=entry.details,
            score=(100 if entry.outcome is Outcome.PASSED else 0) if decided else None,
            raw_data=raw,
        )

    def _fold(self, process_id: str, results: list[SourceResult]) -> list[CheckRecord]:
        """One record per AutoCheck: bundle entries, then source failures, then gaps."""
        records: dict[AutoCheck, CheckRecord] = {}

        for result in results:
            if result.bundle is None:
                continue
            for check, entry in result.bundle.checks.items():
                records[check] = self._record(process_id, check, entry)

        for result in results:
            for err in result.errors:
                named = lookup_auto(err.check) if err.check else None
                targets = [named] if named else checks_for_source(err.source)
                for check in targets:
                    if check in records:
                        continue
                    records[check] = CheckRecord(
                        process_id=process_id,
                        check_type=check.name,
                        status=CheckStatus.FAILED,
                        outcome=Outcome.UNDECIDABLE,
                        severity=check.severity,
                        details=f"Check failed: {err.error}",
                    )

        for check in AutoCheck:
            if check not in records:
                records[check] = CheckRecord(
                    process_id=process_id,
                    check_type=check.name,
                    status=CheckStatus.SKIPPED,
                    outcome=Outcome.UNDECIDABLE,
                    severity=check.severity,
                    details=f"No data returned by {check.source}",
                )

        return [records[check] for check in AutoCheck]
