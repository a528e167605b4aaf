"""
Check taxonomy – the static catalogue of automatic and manual checks.

Each member carries its display label, base weight, severity and (automatic
checks only) the data source that evaluates it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from token_vetting.models import Severity

SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.CRITICAL: 1.0,
    Severity.HIGH: 0.75,
    Severity.MEDIUM: 0.5,
    Severity.LOW: 0.25,
}

# Data source identifiers
GOPLUS = "goplus"
ETHERSCAN = "etherscan"
DEXSCREENER = "dexscreener"
RUGCHECK = "rugcheck"
JUPITER = "jupiter"
SOCIAL = "social"
HOLDER_ANALYSIS = "holder_analysis"


class AutoCheck(Enum):
    # GoPlus security
    HONEYPOT_DETECTION = ("Honeypot Detection", 1.0, Severity.CRITICAL, GOPLUS)
    BUY_TAX_ANALYSIS = ("Buy Tax Analysis", 0.75, Severity.HIGH, GOPLUS)
    SELL_TAX_ANALYSIS = ("Sell Tax Analysis", 0.75, Severity.HIGH, GOPLUS)
    MINT_FUNCTION = ("Mint Function", 0.75, Severity.HIGH, GOPLUS)
    PROXY_CONTRACT = ("Proxy Contract", 0.5, Severity.MEDIUM, GOPLUS)
    OWNER_CHANGE_CAPABILITY = ("Owner Change Capability", 0.75, Severity.HIGH, GOPLUS)
    TRADING_COOLDOWN = ("Trading Cooldown", 0.5, Severity.MEDIUM, GOPLUS)
    BLACKLIST_FUNCTION = ("Blacklist Function", 0.75, Severity.HIGH, GOPLUS)
    HIDDEN_OWNER = ("Hidden Owner", 1.0, Severity.CRITICAL, GOPLUS)
    EXTERNAL_CALL_RISK = ("External Call Risk", 0.75, Severity.HIGH, GOPLUS)
    HOLDER_COUNT = ("Holder Count", 0.5, Severity.MEDIUM, GOPLUS)

    # Etherscan contract checks (EVM only)
    CONTRACT_VERIFIED = ("Contract Verified", 1.0, Severity.CRITICAL, ETHERSCAN)
    CONTRACT_AGE = ("Contract Age", 0.5, Severity.MEDIUM, ETHERSCAN)
    CREATOR_ANALYSIS = ("Creator Analysis", 0.75, Severity.HIGH, ETHERSCAN)

    # DEXScreener market checks
    LIQUIDITY_DEPTH = ("Liquidity Depth", 0.75, Severity.HIGH, DEXSCREENER)
    TRADING_VOLUME_24H = ("24h Trading Volume", 0.5, Severity.MEDIUM, DEXSCREENER)
    PRICE_IMPACT = ("Price Impact", 0.5, Severity.MEDIUM, DEXSCREENER)

    # RugCheck (Solana only)
    MINT_AUTHORITY = ("Mint Authority", 1.0, Severity.CRITICAL, RUGCHECK)
    FREEZE_AUTHORITY = ("Freeze Authority", 0.75, Severity.HIGH, RUGCHECK)
    LP_LOCKED = ("LP Locked", 0.75, Severity.HIGH, RUGCHECK)
    TOP_HOLDER_CONCENTRATION = ("Top Holder Concentration", 0.75, Severity.HIGH, RUGCHECK)
    MUTABLE_METADATA = ("Mutable Metadata", 0.5, Severity.MEDIUM, RUGCHECK)
    RUGCHECK_SCORE = ("RugCheck Score", 1.0, Severity.CRITICAL, RUGCHECK)

    # Jupiter (Solana only)
    JUPITER_VERIFIED = ("Jupiter Verified", 0.75, Severity.HIGH, JUPITER)

    # Social presence, parsed from the DEXScreener payload
    HAS_TWITTER = ("X (Twitter) Presence", 0.5, Severity.MEDIUM, SOCIAL)
    HAS_TELEGRAM = ("Telegram Presence", 0.25, Severity.LOW, SOCIAL)
    HAS_WEBSITE = ("Website Presence", 0.5, Severity.MEDIUM, SOCIAL)
    SOCIAL_SCORE = ("Social Score", 0.25, Severity.LOW, SOCIAL)

    # Holder analysis
    TOP_HOLDER_WALLET_AGE = ("Top Holder Wallet Age", 0.75, Severity.HIGH, HOLDER_ANALYSIS)
    CONNECTED_WALLETS = ("Connected Wallets", 1.0, Severity.CRITICAL, HOLDER_ANALYSIS)
    WASH_TRADING_DETECTION = ("Wash Trading Detection", 1.0, Severity.CRITICAL, HOLDER_ANALYSIS)
    GINI_COEFFICIENT = ("Gini Coefficient", 0.75, Severity.HIGH, HOLDER_ANALYSIS)
    NAKAMOTO_COEFFICIENT = ("Nakamoto Coefficient", 0.75, Severity.HIGH, HOLDER_ANALYSIS)
    EFFECTIVE_HOLDER_COUNT = ("Effective Holder Count", 0.75, Severity.HIGH, HOLDER_ANALYSIS)
    COORDINATED_BUYING = ("Coordinated Buying Detection", 0.75, Severity.HIGH, HOLDER_ANALYSIS)

    def __init__(self, label: str, weight: float, severity: Severity, source: str):
        self.label = label
        self.weight = weight
        self.severity = severity
        self.source = source


class ManualCheck(Enum):
    TEAM_KYC = ("Team KYC/Doxxed", 1.0, Severity.CRITICAL)
    AUDIT_REVIEW = ("Audit Review", 1.0, Severity.CRITICAL)
    TOKENOMICS_ANALYSIS = ("Tokenomics Analysis", 0.75, Severity.HIGH)
    WHITEPAPER_REVIEW = ("Whitepaper Review", 0.5, Severity.MEDIUM)
    ROADMAP_ASSESSMENT = ("Roadmap Assessment", 0.25, Severity.LOW)
    COMMUNITY_ANALYSIS = ("Community Analysis", 0.5, Severity.MEDIUM)
    PARTNERSHIP_VERIFICATION = ("Partnership Verification", 0.5, Severity.MEDIUM)
    LEGAL_COMPLIANCE = ("Legal Compliance", 0.75, Severity.HIGH)
    LIQUIDITY_LOCK_VERIFY = ("Liquidity Lock Verification", 0.75, Severity.HIGH)
    HISTORICAL_BEHAVIOR = ("Historical Behavior", 0.75, Severity.HIGH)

    def __init__(self, label: str, weight: float, severity: Severity):
        self.label = label
        self.weight = weight
        self.severity = severity


# Passing checks worth surfacing as green flags
NOTABLE_AUTO_CHECKS = frozenset({
    AutoCheck.CONTRACT_VERIFIED,
    AutoCheck.HONEYPOT_DETECTION,
    AutoCheck.HIDDEN_OWNER,
})
NOTABLE_MANUAL_CHECKS = frozenset({
    ManualCheck.TEAM_KYC,
    ManualCheck.AUDIT_REVIEW,
    ManualCheck.LIQUIDITY_LOCK_VERIFY,
})


def lookup_auto(check_type: str) -> Optional[AutoCheck]:
    return AutoCheck.__members__.get(check_type)


def lookup_manual(check_type: str) -> Optional[ManualCheck]:
    return ManualCheck.__members__.get(check_type)


def checks_for_source(source: str) -> list[AutoCheck]:
    return [check for check in AutoCheck if check.source == source]
