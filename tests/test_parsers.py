"""
Unit tests for the provider parsers.
"""

from __future__ import annotations

from token_vetting.models import Outcome, Severity
from token_vetting.parsers import (
    format_number,
    parse_dexscreener_data,
    parse_etherscan_checks,
    parse_goplus_checks,
    parse_jupiter_verified,
    parse_rugcheck_data,
    parse_social_presence,
    skipped_bundle,
)
from token_vetting.taxonomy import ETHERSCAN, AutoCheck, checks_for_source

TOKEN = "0xAbC0000000000000000000000000000000000001"


def _goplus(**overrides) -> dict:
    data = {
        "token_name": "Test Token",
        "token_symbol": "TST",
        "is_honeypot": "0",
        "buy_tax": "0.05",
        "sell_tax": "0.05",
        "is_mintable": "0",
        "is_proxy": "0",
        "can_take_back_ownership": "0",
        "trading_cooldown": "0",
        "is_blacklisted": "0",
        "is_anti_whale": "0",
        "hidden_owner": "0",
        "external_call": "0",
        "holder_count": "2500",
    }
    data.update(overrides)
    return data


def _pair(address: str = TOKEN, liquidity: float = 100_000, volume: float = 50_000, info: dict | None = None) -> dict:
    return {
        "baseToken": {"address": address},
        "liquidity": {"usd": liquidity},
        "volume": {"h24": volume},
        "info": info or {},
    }


class TestGoPlus:
    def test_empty_payload_returns_none(self):
        assert parse_goplus_checks(None) is None
        assert parse_goplus_checks({}) is None

    def test_clean_token_passes_everything(self):
        bundle = parse_goplus_checks(_goplus())
        assert set(bundle.checks) == set(checks_for_source("goplus"))
        assert all(e.outcome is Outcome.PASSED for e in bundle.checks.values())
        assert bundle.token_name == "Test Token"
        assert bundle.token_symbol == "TST"

    def test_honeypot_fails(self):
        bundle = parse_goplus_checks(_goplus(is_honeypot="1"))
        entry = bundle.checks[AutoCheck.HONEYPOT_DETECTION]
        assert entry.outcome is Outcome.FAILED
        assert "honeypot" in entry.details

    def test_high_sell_tax_fails(self):
        entry = parse_goplus_checks(_goplus(sell_tax="0.25")).checks[AutoCheck.SELL_TAX_ANALYSIS]
        assert entry.outcome is Outcome.FAILED
        assert entry.value == 25.0

    def test_anti_whale_counts_as_blacklist(self):
        entry = parse_goplus_checks(_goplus(is_anti_whale="1")).checks[AutoCheck.BLACKLIST_FUNCTION]
        assert entry.outcome is Outcome.FAILED

    def test_few_holders_fail(self):
        entry = parse_goplus_checks(_goplus(holder_count="12")).checks[AutoCheck.HOLDER_COUNT]
        assert entry.outcome is Outcome.FAILED


class TestDexScreener:
    def test_no_pairs_returns_none(self):
        assert parse_dexscreener_data({"pairs": []}, TOKEN) is None
        assert parse_dexscreener_data(None, TOKEN) is None

    def test_aggregates_pairs_for_base_token(self):
        data = {"pairs": [_pair(TOKEN.lower(), 30_000, 600), _pair(TOKEN, 30_000, 600), _pair("0xother", 1e9, 1e9)]}
        bundle = parse_dexscreener_data(data, TOKEN)
        liquidity = bundle.checks[AutoCheck.LIQUIDITY_DEPTH]
        assert liquidity.value == 60_000
        assert liquidity.outcome is Outcome.PASSED
        assert bundle.checks[AutoCheck.TRADING_VOLUME_24H].value == 1_200
        assert bundle.checks[AutoCheck.PRICE_IMPACT].value == "Low"
        assert bundle.raw_data is data

    def test_thin_liquidity_fails(self):
        bundle = parse_dexscreener_data({"pairs": [_pair(liquidity=5_000, volume=10)]}, TOKEN)
        assert bundle.checks[AutoCheck.LIQUIDITY_DEPTH].outcome is Outcome.FAILED
        assert bundle.checks[AutoCheck.PRICE_IMPACT].value == "High"


class TestSocial:
    def test_reads_links_from_first_pair(self):
        info = {
            "socials": [{"type": "twitter", "url": "https://x.com/tst"}, {"type": "discord", "url": "d"}],
            "websites": [{"url": "https://tst.io"}],
        }
        bundle = parse_social_presence({"pairs": [_pair(info=info)]})
        assert bundle.checks[AutoCheck.HAS_TWITTER].outcome is Outcome.PASSED
        assert bundle.checks[AutoCheck.HAS_TELEGRAM].outcome is Outcome.FAILED
        assert bundle.checks[AutoCheck.HAS_TELEGRAM].severity is Severity.LOW
        assert bundle.checks[AutoCheck.HAS_WEBSITE].outcome is Outcome.PASSED
        social = bundle.checks[AutoCheck.SOCIAL_SCORE]
        assert social.value == 3
        assert social.outcome is Outcome.PASSED

    def test_no_pairs_returns_none(self):
        assert parse_social_presence({"pairs": []}) is None

    def test_tolerates_bare_strings_in_links(self):
        info = {"socials": ["https://x.com/tst", {"type": "telegram", "url": "https://t.me/tst"}],
                "websites": ["https://tst.io"]}
        bundle = parse_social_presence({"pairs": [_pair(info=info)]})
        assert bundle.checks[AutoCheck.HAS_TWITTER].outcome is Outcome.FAILED
        assert bundle.checks[AutoCheck.HAS_TELEGRAM].outcome is Outcome.PASSED
        assert bundle.checks[AutoCheck.HAS_WEBSITE].details == "Website: https://tst.io"

    def test_tolerates_non_dict_info(self):
        bundle = parse_social_presence({"pairs": [{"info": "n/a"}]})
        assert bundle.checks[AutoCheck.SOCIAL_SCORE].value == 0


class TestEtherscan:
    def test_verified_contract(self):
        source = {"verified": True, "data": {"SourceCode": "contract X {}", "ContractName": "X"}}
        creation = {"contractCreator": "0xcreator0000", "txHash": "0xdeadbeef00112233"}
        bundle = parse_etherscan_checks(source, creation)
        assert bundle.source == ETHERSCAN
        assert bundle.checks[AutoCheck.CONTRACT_VERIFIED].outcome is Outcome.PASSED
        assert bundle.checks[AutoCheck.CREATOR_ANALYSIS].outcome is Outcome.PASSED

    def test_unverified_contract_fails(self):
        bundle = parse_etherscan_checks({"verified": False, "data": None}, None)
        assert bundle.checks[AutoCheck.CONTRACT_VERIFIED].outcome is Outcome.FAILED
        assert bundle.checks[AutoCheck.CREATOR_ANALYSIS].outcome is Outcome.FAILED


class TestRugCheck:
    def test_revoked_authorities_and_good_score(self):
        data = {
            "tokenMeta": {"name": "Sol Token", "symbol": "SOLT", "mutable": False},
            "mintAuthority": None,
            "freezeAuthority": None,
            "score": 800,
            "markets": [{"lp": {"lpLockedPct": 95, "lpLockedUSD": 120_000}}],
            "topHolders": [{"pct": 5.0}] * 5,
        }
        bundle = parse_rugcheck_data(data)
        assert all(e.outcome is Outcome.PASSED for e in bundle.checks.values())
        assert bundle.token_name == "Sol Token"
        assert bundle.checks[AutoCheck.TOP_HOLDER_CONCENTRATION].value == 25.0

    def test_active_mint_authority_fails(self):
        bundle = parse_rugcheck_data({"mintAuthority": "AuthXyz123456", "score": 100})
        entry = bundle.checks[AutoCheck.MINT_AUTHORITY]
        assert entry.outcome is Outcome.FAILED
        assert "Auth...3456" in entry.details
        assert bundle.checks[AutoCheck.RUGCHECK_SCORE].outcome is Outcome.FAILED


class TestJupiterAndSkipped:
    def test_jupiter_verified(self):
        assert parse_jupiter_verified(True).checks[AutoCheck.JUPITER_VERIFIED].outcome is Outcome.PASSED
        assert parse_jupiter_verified(False).checks[AutoCheck.JUPITER_VERIFIED].outcome is Outcome.FAILED

    def test_skipped_bundle_is_undecidable(self):
        bundle = skipped_bundle(ETHERSCAN, checks_for_source(ETHERSCAN))
        assert bundle.skipped
        assert all(e.outcome is Outcome.UNDECIDABLE for e in bundle.checks.values())
        assert all(e.details == "Skipped - not supported on this chain" for e in bundle.checks.values())


def test_format_number():
    assert format_number(1_500_000) == "1.50M"
    assert format_number(2_500) == "2.50K"
    assert format_number(12) == "12.00"
