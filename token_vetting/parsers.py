"""
Provider parsers – turn raw provider payloads into check bundles.

Each parser returns None when the payload holds nothing to evaluate; the
orchestrator then records the provider's checks as SKIPPED.
"""

from __future__ import annotations

from typing import Any, Optional

from token_vetting.models import CheckBundle, CheckEntry, Outcome, Severity
from token_vetting.taxonomy import (
    DEXSCREENER,
    ETHERSCAN,
    GOPLUS,
    JUPITER,
    RUGCHECK,
    SOCIAL,
    AutoCheck,
)

SKIPPED_DETAILS = "Skipped - not supported on this chain"


def _entry(passed: Optional[bool], value: Any, details: str, severity: Severity | None = None) -> CheckEntry:
    return CheckEntry(outcome=Outcome.from_passed(passed), value=value, details=details, severity=severity)


def _to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_number(num: float) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    if num >= 1_000:
        return f"{num / 1_000:.2f}K"
    return f"{num:.2f}"


def format_address(address: Optional[str]) -> str:
    if not address:
        return "N/A"
    return f"{address[:4]}...{address[-4:]}"


def skipped_bundle(source: str, checks: list[AutoCheck], details: str = SKIPPED_DETAILS) -> CheckBundle:
    """Bundle for a provider that does not apply to the token's chain."""
    return CheckBundle(
        source=source,
        checks={check: CheckEntry(outcome=Outcome.UNDECIDABLE, details=details) for check in checks},
        skipped=True,
    )


# ---------------------------------------------------------------------------
# GoPlus
# ---------------------------------------------------------------------------

def parse_goplus_checks(data: Optional[dict]) -> Optional[CheckBundle]:
    if not data:
        return None

    def flag(key: str) -> bool:
        return data.get(key) == "1"

    buy_tax = _to_float(data.get("buy_tax"))
    sell_tax = _to_float(data.get("sell_tax"))
    try:
        holder_count = int(data.get("holder_count") or 0)
    except (TypeError, ValueError):
        holder_count = 0
    blacklist = flag("is_blacklisted") or flag("is_anti_whale")

    checks = {
        AutoCheck.HONEYPOT_DETECTION: _entry(
            not flag("is_honeypot"), flag("is_honeypot"),
            "Token detected as honeypot - cannot sell" if flag("is_honeypot") else "No honeypot detected",
        ),
        AutoCheck.BUY_TAX_ANALYSIS: _entry(buy_tax <= 0.1, buy_tax * 100, f"Buy tax: {buy_tax * 100:.1f}%"),
        AutoCheck.SELL_TAX_ANALYSIS: _entry(sell_tax <= 0.1, sell_tax * 100, f"Sell tax: {sell_tax * 100:.1f}%"),
        AutoCheck.MINT_FUNCTION: _entry(
            not flag("is_mintable"), flag("is_mintable"),
            "Contract has mint function - supply can increase" if flag("is_mintable")
            else "No mint function detected",
        ),
        AutoCheck.PROXY_CONTRACT: _entry(
            not flag("is_proxy"), flag("is_proxy"),
            "Contract is a proxy - implementation can change" if flag("is_proxy") else "Not a proxy contract",
        ),
        AutoCheck.OWNER_CHANGE_CAPABILITY: _entry(
            not flag("can_take_back_ownership"), flag("can_take_back_ownership"),
            "Owner can reclaim ownership after renouncing" if flag("can_take_back_ownership")
            else "No ownership recovery detected",
        ),
        AutoCheck.TRADING_COOLDOWN: _entry(
            not flag("trading_cooldown"), flag("trading_cooldown"),
            "Trading cooldown enabled" if flag("trading_cooldown") else "No trading cooldown",
        ),
        AutoCheck.BLACKLIST_FUNCTION: _entry(
            not blacklist, blacklist,
            "Contract can blacklist addresses or has anti-whale" if blacklist else "No blacklist function detected",
        ),
        AutoCheck.HIDDEN_OWNER: _entry(
            not flag("hidden_owner"), flag("hidden_owner"),
            "Hidden owner detected - contract may have undisclosed control" if flag("hidden_owner")
            else "No hidden owner detected",
        ),
        AutoCheck.EXTERNAL_CALL_RISK: _entry(
            not flag("external_call"), flag("external_call"),
            "Contract makes external calls - potential risk" if flag("external_call")
            else "No risky external calls detected",
        ),
        AutoCheck.HOLDER_COUNT: _entry(holder_count >= 100, holder_count, f"{holder_count} holders"),
    }

    return CheckBundle(
        source=GOPLUS,
        checks=checks,
        raw_data=data,
        token_name=data.get("token_name") or None,
        token_symbol=data.get("token_symbol") or None,
    )


# ---------------------------------------------------------------------------
# DEXScreener
# ---------------------------------------------------------------------------

def parse_dexscreener_data(data: Optional[dict], token_address: str) -> Optional[CheckBundle]:
    """Market checks aggregated over the pairs where the token is the base token."""
    pairs = (data or {}).get("pairs") or []
    if not pairs:
        return None

    address = token_address.lower()
    relevant = [p for p in pairs if ((p.get("baseToken") or {}).get("address") or "").lower() == address]
    relevant = relevant or pairs

    total_liquidity = sum(_to_float((p.get("liquidity") or {}).get("usd")) for p in relevant)
    total_volume = sum(_to_float((p.get("volume") or {}).get("h24")) for p in relevant)

    if total_liquidity < 10_000:
        impact, impact_details = "High", "High price impact - low liquidity"
    elif total_liquidity < 50_000:
        impact, impact_details = "Medium", "Medium price impact"
    else:
        impact, impact_details = "Low", "Low price impact - good liquidity"

    checks = {
        AutoCheck.LIQUIDITY_DEPTH: _entry(
            total_liquidity >= 10_000, total_liquidity, f"Total liquidity: ${format_number(total_liquidity)}"
        ),
        AutoCheck.TRADING_VOLUME_24H: _entry(
            total_volume >= 1_000, total_volume, f"24h volume: ${format_number(total_volume)}"
        ),
        AutoCheck.PRICE_IMPACT: _entry(total_liquidity >= 50_000, impact, impact_details),
    }
    return CheckBundle(source=DEXSCREENER, checks=checks, raw_data=data)


def parse_social_presence(data: Optional[dict]) -> Optional[CheckBundle]:
    """Social checks from the first pair's ``info`` block of a DEXScreener payload."""
    pairs = (data or {}).get("pairs") or []
    if not pairs:
        return None

    first = pairs[0] if isinstance(pairs[0], dict) else {}
    info = first.get("info")
    if not isinstance(info, dict):
        info = {}
    socials = [s for s in info.get("socials") or [] if isinstance(s, dict)]
    websites = info.get("websites") or []

    def social_url(kind: str) -> Optional[str]:
        for social in socials:
            if social.get("type") == kind:
                return social.get("url") or "Present"
        return None

    def site_url(site) -> Optional[str]:
        # Listings carry {"url": ...} objects; some older ones are bare strings
        if isinstance(site, dict):
            return site.get("url") or "Present"
        return site if isinstance(site, str) and site else None

    twitter = social_url("twitter")
    telegram = social_url("telegram")
    discord = social_url("discord")
    website = site_url(websites[0]) if websites else None

    core_channels = sum(1 for c in (twitter, telegram, website) if c)
    all_channels = core_channels + (1 if discord else 0)

    checks = {
        AutoCheck.HAS_TWITTER: _entry(
            bool(twitter), bool(twitter), f"X: {twitter}" if twitter else "No X account linked", Severity.MEDIUM
        ),
        AutoCheck.HAS_TELEGRAM: _entry(
            bool(telegram), bool(telegram),
            f"Telegram: {telegram}" if telegram else "No Telegram group linked", Severity.LOW,
        ),
        AutoCheck.HAS_WEBSITE: _entry(
            bool(website), bool(website), f"Website: {website}" if website else "No website linked", Severity.MEDIUM
        ),
        AutoCheck.SOCIAL_SCORE: _entry(
            core_channels >= 2, all_channels, f"Social presence: {all_channels}/4 channels", Severity.LOW
        ),
    }
    return CheckBundle(source=SOCIAL, checks=checks)


# ---------------------------------------------------------------------------
# Etherscan
# ---------------------------------------------------------------------------

def parse_etherscan_checks(source: Optional[dict], creation: Optional[dict]) -> CheckBundle:
    source = source or {}
    creation = creation or {}
    contract = source.get("data") or {}
    verified = source.get("verified") is True
    creator = creation.get("contractCreator")

    age_details = "Contract age could not be determined"
    if creation.get("txHash"):
        age_details = f"Created in tx: {creation['txHash'][:10]}..."

    checks = {
        AutoCheck.CONTRACT_VERIFIED: _entry(
            verified and contract.get("SourceCode", "") != "",
            verified,
            f"Verified: {contract.get('ContractName') or 'Unknown'}" if verified
            else "Contract source code not verified",
        ),
        # TODO: resolve the creation block timestamp so CONTRACT_AGE can fail young contracts.
        AutoCheck.CONTRACT_AGE: _entry(True, None, age_details),
        AutoCheck.CREATOR_ANALYSIS: _entry(
            bool(creator), creator, f"Creator: {creator[:10]}..." if creator else "Creator address unknown"
        ),
    }
    return CheckBundle(source=ETHERSCAN, checks=checks, raw_data={"source": contract, "creation": creation})


# ---------------------------------------------------------------------------
# RugCheck
# ---------------------------------------------------------------------------

def _rugcheck_label(score: float) -> str:
    if score >= 700:
        return "Good"
    if score >= 500:
        return "Moderate"
    if score >= 300:
        return "Risky"
    return "High Risk"


def parse_rugcheck_data(data: Optional[dict]) -> Optional[CheckBundle]:
    if not data:
        return None

    meta = data.get("tokenMeta") or {}
    markets = data.get("markets") or []
    top_holders = data.get("topHolders") or []
    mint_authority = data.get("mintAuthority")
    freeze_authority = data.get("freezeAuthority")
    score = _to_float(data.get("score"))

    lp_usd = sum(_to_float((m.get("lp") or {}).get("lpLockedUSD")) for m in markets)
    lp_locked = sum(_to_float((m.get("lp") or {}).get("lpLockedPct")) for m in markets) / max(len(markets), 1)
    top10 = sum(_to_float(h.get("pct")) for h in top_holders[:10])

    checks = {
        AutoCheck.MINT_AUTHORITY: _entry(
            mint_authority is None, mint_authority,
            "Mint authority revoked - no new tokens can be created" if mint_authority is None
            else f"Mint authority active: {format_address(mint_authority)}",
            Severity.CRITICAL,
        ),
        AutoCheck.FREEZE_AUTHORITY: _entry(
            freeze_authority is None, freeze_authority,
            "Freeze authority revoked - tokens cannot be frozen" if freeze_authority is None
            else f"Freeze authority active: {format_address(freeze_authority)}",
            Severity.HIGH,
        ),
        AutoCheck.LP_LOCKED: _entry(
            lp_locked >= 80, lp_locked, f"{lp_locked:.1f}% of LP locked (${format_number(lp_usd)})", Severity.HIGH
        ),
        AutoCheck.TOP_HOLDER_CONCENTRATION: _entry(
            top10 <= 50, top10, f"Top 10 holders own {top10:.1f}% of supply", Severity.HIGH
        ),
        AutoCheck.MUTABLE_METADATA: _entry(
            not meta.get("mutable"), bool(meta.get("mutable")),
            "Token metadata is mutable - can be changed" if meta.get("mutable") else "Token metadata is immutable",
            Severity.MEDIUM,
        ),
        # RugCheck scores 0-1000, higher is safer
        AutoCheck.RUGCHECK_SCORE: _entry(
            score >= 500, score, f"RugCheck score: {score:g}/1000 ({_rugcheck_label(score)})", Severity.CRITICAL
        ),
    }
    return CheckBundle(
        source=RUGCHECK,
        checks=checks,
        raw_data=data,
        token_name=meta.get("name") or None,
        token_symbol=meta.get("symbol") or None,
    )


# ---------------------------------------------------------------------------
# Jupiter
# ---------------------------------------------------------------------------

def parse_jupiter_verified(verified: bool) -> CheckBundle:
    details = "Token is on Jupiter verified list" if verified else "Token is NOT on Jupiter verified list"
    return CheckBundle(
        source=JUPITER,
        checks={AutoCheck.JUPITER_VERIFIED: _entry(verified, verified, details, Severity.HIGH)},
    )
