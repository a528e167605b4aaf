"""
Holder analyzer – traces wallet funding among a token's top holders to spot
coordinated accumulation, wash trading and concentrated ownership.

Produces a CheckBundle with the same shape the provider parsers produce, so
the orchestrator folds it like any other source.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from token_vetting.chain_lookup import WalletLookup
from token_vetting.chains import Chain, ChainConfig, get_chain_config
from token_vetting.models import (
    CheckBundle,
    CheckEntry,
    Holder,
    HolderTrace,
    Outcome,
    SourceError,
    Transfer,
    WalletCluster,
)
from token_vetting.taxonomy import HOLDER_ANALYSIS, AutoCheck

logger = logging.getLogger(__name__)


@dataclass
class HolderAnalysis:
    bundle: CheckBundle
    traces: list = field(default_factory=list)
    clusters: list = field(default_factory=list)
    errors: list = field(default_factory=list)


def _undecidable(details: str, raw_data=None) -> CheckEntry:
    return CheckEntry(outcome=Outcome.UNDECIDABLE, details=details, raw_data=raw_data)


def _verdict(passed: bool, value, details: str, raw_data=None) -> CheckEntry:
    return CheckEntry(outcome=Outcome.from_passed(passed), value=value, details=details, raw_data=raw_data)


class HolderAnalyzer:
    """Runs the holder sub-checks for one token."""

    FRESH_WALLET_DAYS = 7
    FRESH_WALLET_MAX_PCT = 30.0
    CONNECTED_MAX_PCT = 30.0
    WASH_MIN_TRADES_EACH_WAY = 2
    WASH_MAX_PCT = 20.0
    GINI_MAX = 0.8
    NAKAMOTO_MIN = 5
    NAKAMOTO_CONTROL_PCT = 51.0
    EFFECTIVE_HOLDERS_MIN = 10
    COORDINATION_WINDOW = 300  # seconds between consecutive transfers
    COORDINATION_MIN_GROUP = 3
    COORDINATED_MAX_PCT = 25.0

    HOLDER_FETCH_LIMIT = 50
    TRANSFER_FETCH_LIMIT = 100

    def __init__(
        self,
        lookup_factory: Callable[[Chain], WalletLookup],
        sample_size: int = 10,
        max_concurrency: int = 4,
    ):
        self.lookup_factory = lookup_factory
        self.sample_size = sample_size
        self.max_concurrency = max_concurrency

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def run(self, contract_address: str, chain: str | Chain) -> HolderAnalysis:
        """Fetch top holders and recent transfers, then analyze them."""
        chain_config = get_chain_config(chain)
        lookup = self.lookup_factory(chain_config.chain)
        errors: list[SourceError] = []

        async def fetch(name: str, fn, limit: int) -> list:
            try:
                return await asyncio.to_thread(fn, contract_address, limit)
            except Exception as exc:
                logger.warning("Holder analysis: could not fetch %s for %s: %s", name, contract_address, exc)
                errors.append(SourceError(HOLDER_ANALYSIS, f"{name} lookup failed: {exc}"))
                return []

        holders, transfers = await asyncio.gather(
            fetch("holders", lookup.top_holders, self.HOLDER_FETCH_LIMIT),
            fetch("transfers", lookup.token_transfers, self.TRANSFER_FETCH_LIMIT),
        )
        analysis = await self.analyze(holders, chain_config.chain, transfers, lookup=lookup)
        analysis.errors[:0] = errors
        return analysis

    async def analyze(
        self,
        holders: Iterable[Holder],
        chain: str | Chain,
        transfers: Iterable[Transfer] = (),
        lookup: Optional[WalletLookup] = None,
    ) -> HolderAnalysis:
        chain_config = get_chain_config(chain)
        holders = list(holders)
        transfers = list(transfers)
        sample = holders[: self.sample_size]

        traces: list[HolderTrace] = []
        if sample:
            lookup = lookup or self.lookup_factory(chain_config.chain)
            traces = await self._trace_holders(sample, lookup)
        clusters = self._cluster_by_funding(traces, chain_config)

        sub_checks = [
            (AutoCheck.TOP_HOLDER_WALLET_AGE, lambda: self.check_fresh_wallets(holders, traces)),
            (AutoCheck.CONNECTED_WALLETS, lambda: self.check_connected_wallets(holders, traces, clusters)),
            (AutoCheck.WASH_TRADING_DETECTION, lambda: self.check_wash_trading(transfers, chain_config)),
            (AutoCheck.GINI_COEFFICIENT, lambda: self.check_gini(holders)),
            (AutoCheck.NAKAMOTO_COEFFICIENT, lambda: self.check_nakamoto(holders)),
            (AutoCheck.EFFECTIVE_HOLDER_COUNT, lambda: self.check_effective_holders(holders, clusters)),
            (AutoCheck.COORDINATED_BUYING, lambda: self.check_coordinated_buying(transfers)),
        ]

        checks: dict[AutoCheck, CheckEntry] = {}
        errors: list[SourceError] = []
        for check, fn in sub_checks:
            try:
                checks[check] = fn()
            except Exception as exc:
                logger.warning("Holder analysis: %s failed: %s", check.name, exc)
                errors.append(SourceError(HOLDER_ANALYSIS, str(exc), check.name))

        bundle = CheckBundle(
            source=HOLDER_ANALYSIS,
            checks=checks,
            raw_data={
                "holders_analyzed": len(traces),
                "clusters": [
                    {"cluster_id": c.cluster_id, "funding_source": c.funding_source, "wallets": c.wallets}
                    for c in clusters
                ],
            },
        )
        return HolderAnalysis(bundle=bundle, traces=traces, clusters=clusters, errors=errors)

    # ---------------------------------------------------------------------------
    # Wallet tracing
    # ---------------------------------------------------------------------------

    async def _trace_holders(self, sample: list[Holder], lookup: WalletLookup) -> list[HolderTrace]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def resolve(fn, address: str):
            async with semaphore:
                try:
                    return await asyncio.to_thread(fn, address)
                except Exception as exc:
                    logger.debug("Lookup %s unresolved for %s: %s", fn.__name__, address, exc)
                    return None

        async def trace(holder: Holder) -> HolderTrace:
            age, funder = await asyncio.gather(
                resolve(lookup.wallet_age_days, holder.address),
                resolve(lookup.funding_source, holder.address),
            )
            return HolderTrace(holder=holder, age_days=age, funding_source=funder)

        return list(await asyncio.gather(*(trace(h) for h in sample)))

    @staticmethod
    def _cluster_by_funding(traces: list[HolderTrace], chain_config: ChainConfig) -> list[WalletCluster]:
        """Group holders that share a funding source. One hop only."""
        by_source: dict[str, list[HolderTrace]] = defaultdict(list)
        for t in traces:
            if t.funding_source:
                by_source[chain_config.normalize_address(t.funding_source)].append(t)

        clusters: list[WalletCluster] = []
        for source, members in by_source.items():
            if len(members) < 2:
                continue
            cluster = WalletCluster(
                cluster_id=len(clusters) + 1,
                funding_source=source,
                wallets=[m.address for m in members],
            )
            for m in members:
                m.cluster_id = cluster.cluster_id
            clusters.append(cluster)
        return clusters

    # ---------------------------------------------------------------------------
    # Sub-checks
    # ---------------------------------------------------------------------------

    def check_fresh_wallets(self, holders: list[Holder], traces: list[HolderTrace]) -> CheckEntry:
        if not holders:
            return _undecidable("Unable to fetch holder data")

        aged = [t for t in traces if t.age_days is not None]
        if not aged:
            return _undecidable("Could not analyze wallet ages")

        fresh = sum(1 for t in aged if t.age_days < self.FRESH_WALLET_DAYS)
        pct = fresh / len(aged) * 100
        passed = pct < self.FRESH_WALLET_MAX_PCT
        if passed:
            details = f"{len(aged)} wallets analyzed, {fresh} fresh wallets ({pct:.1f}%)"
        else:
            details = (
                f"Warning: {fresh}/{len(aged)} top holders ({pct:.1f}%) have wallets younger "
                f"than {self.FRESH_WALLET_DAYS} days"
            )
        raw = [{"address": t.address, "percentage": t.holder.percentage, "age_days": t.age_days} for t in aged]
        return _verdict(passed, pct, details, raw)

    def check_connected_wallets(
        self, holders: list[Holder], traces: list[HolderTrace], clusters: list[WalletCluster]
    ) -> CheckEntry:
        if not holders:
            return _undecidable("Unable to fetch holder data")

        analyzed = sum(1 for t in traces if t.funding_source)
        if analyzed == 0:
            return _undecidable("Could not analyze wallet connections (API key may be required)")

        connected = sum(c.size for c in clusters)
        pct = connected / analyzed * 100
        passed = pct < self.CONNECTED_MAX_PCT
        if passed:
            details = f"No significant wallet clustering detected among top {analyzed} holders"
        else:
            details = (
                f"Warning: {connected} wallets ({pct:.1f}%) share funding sources - "
                "possible coordinated buying"
            )
        raw = {
            "clusters": [
                {"funding_source": c.funding_source, "wallets": c.wallets, "count": c.size} for c in clusters
            ],
            "analyzed_count": analyzed,
        }
        return _verdict(passed, pct, details, raw)

    def check_wash_trading(self, transfers: list[Transfer], chain_config: ChainConfig) -> CheckEntry:
        if not transfers:
            return _undecidable("Unable to fetch transaction data")

        # Undirected pair -> per-direction trade counts and summed volume
        pairs: dict[tuple[str, str], dict] = {}
        total_volume = 0.0
        for tx in transfers:
            if not tx.from_address or not tx.to_address:
                continue
            sender = chain_config.normalize_address(tx.from_address)
            receiver = chain_config.normalize_address(tx.to_address)
            key = tuple(sorted((sender, receiver)))
            pair = pairs.setdefault(key, {"forward": 0, "backward": 0, "volume": 0.0, "trades": 0})
            if sender == key[0]:
                pair["forward"] += 1
            else:
                pair["backward"] += 1
            pair["volume"] += tx.value
            pair["trades"] += 1
            total_volume += tx.value

        suspicious = [
            {"addresses": list(key), "trade_count": p["trades"], "volume": p["volume"]}
            for key, p in pairs.items()
            if p["forward"] >= self.WASH_MIN_TRADES_EACH_WAY and p["backward"] >= self.WASH_MIN_TRADES_EACH_WAY
        ]
        suspicious.sort(key=lambda p: p["volume"], reverse=True)
        suspicious_volume = sum(p["volume"] for p in suspicious)

        pct = suspicious_volume / total_volume * 100 if total_volume > 0 else 0.0
        passed = pct < self.WASH_MAX_PCT
        if passed:
            details = (
                f"Analyzed {len(transfers)} transactions, no significant wash trading detected ({pct:.1f}%)"
            )
        else:
            details = (
                f"Warning: {pct:.1f}% of trading volume appears to be wash trading between "
                f"{len(suspicious)} wallet pairs"
            )
        raw = {
            "total_transactions": len(transfers),
            "suspicious_pairs": suspicious[:5],
            "wash_trading_percentage": pct,
        }
        return _verdict(passed, pct, details, raw)

    def check_gini(self, holders: list[Holder]) -> CheckEntry:
        gini = self.gini_coefficient(holders)
        if gini is None:
            return _undecidable("Not enough holder data to measure distribution")
        passed = gini < self.GINI_MAX
        label = "highly concentrated" if not passed else "acceptable"
        return _verdict(passed, round(gini, 4), f"Gini coefficient {gini:.2f} - distribution {label}")

    def check_nakamoto(self, holders: list[Holder]) -> CheckEntry:
        nakamoto = self.nakamoto_coefficient(holders)
        if nakamoto is None:
            return _undecidable("Unable to fetch holder data")
        passed = nakamoto > self.NAKAMOTO_MIN
        return _verdict(
            passed, nakamoto, f"{nakamoto} wallets control {self.NAKAMOTO_CONTROL_PCT:g}% of supply"
        )

    def check_effective_holders(self, holders: list[Holder], clusters: list[WalletCluster]) -> CheckEntry:
        if not holders:
            return _undecidable("Unable to fetch holder data")
        effective = len(holders)
        for cluster in clusters:
            effective -= cluster.size - 1
        effective = max(1, effective)
        passed = effective > self.EFFECTIVE_HOLDERS_MIN
        return _verdict(
            passed, effective, f"{effective} effective holders among {len(holders)} top holders"
        )

    def check_coordinated_buying(self, transfers: list[Transfer]) -> CheckEntry:
        timed = sorted((t for t in transfers if t.timestamp is not None), key=lambda t: t.timestamp)
        if len(timed) < 2:
            return _undecidable("Not enough timestamped transfers")

        groups: list[list[Transfer]] = []
        current = [timed[0]]
        for prev, tx in zip(timed, timed[1:]):
            if tx.timestamp - prev.timestamp <= self.COORDINATION_WINDOW:
                current.append(tx)
            else:
                groups.append(current)
                current = [tx]
        groups.append(current)
        groups = [g for g in groups if len(g) >= self.COORDINATION_MIN_GROUP]

        coordinated = sum(len(g) for g in groups)
        pct = coordinated / len(timed) * 100
        passed = pct < self.COORDINATED_MAX_PCT
        details = (
            f"{len(groups)} coordinated buying groups covering {pct:.1f}% of transfers"
            if groups else "No coordinated buying detected"
        )
        raw = {
            "groups": [
                {
                    "count": len(g),
                    "start_time": g[0].timestamp,
                    "end_time": g[-1].timestamp,
                    "unique_wallets": len({t.to_address for t in g}),
                }
                for g in groups[:10]
            ],
            "coordinated_percentage": pct,
        }
        return _verdict(passed, pct, details, raw)

    # ---------------------------------------------------------------------------
    # Distribution metrics
    # ---------------------------------------------------------------------------

    @staticmethod
    def _weights(holders: list[Holder]) -> list[float]:
        if any(h.balance > 0 for h in holders):
            return [h.balance for h in holders]
        return [h.percentage for h in holders]

    @classmethod
    def gini_coefficient(cls, holders: list[Holder]) -> Optional[float]:
        """Gini over holder balances, clamped to [0, 1]. None below two holders."""
        if len(holders) < 2:
            return None
        values = sorted(cls._weights(holders))
        total = sum(values)
        if total <= 0:
            return None
        n = len(values)
        weighted = sum((i + 1) * v for i, v in enumerate(values))
        gini = 2 * weighted / (n * total) - (n + 1) / n
        return max(0.0, min(1.0, gini))

    @classmethod
    def nakamoto_coefficient(cls, holders: list[Holder]) -> Optional[int]:
        """Fewest holders whose combined share reaches 51 % of supply."""
        if not holders or sum(h.percentage for h in holders) <= 0:
            return None
        cumulative = 0.0
        for count, holder in enumerate(sorted(holders, key=lambda h: h.percentage, reverse=True), start=1):
            cumulative += holder.percentage
            if cumulative >= cls.NAKAMOTO_CONTROL_PCT:
                return count
        return len(holders)
