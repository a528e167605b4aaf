"""
Unit tests for the Solana and EVM wallet lookups.
"""

from __future__ import annotations

import time

import pytest

from token_vetting.chain_lookup import EvmLookup, SolanaLookup, lookup_for_chain
from token_vetting.data_fetcher import EtherscanClient, SolanaRpcClient
from token_vetting.exceptions import UnsupportedChainError

DAY = 86_400


def _sol_client(mocker, **methods):
    client = mocker.Mock(spec=SolanaRpcClient)
    client.has_enhanced_api = True
    for name, value in methods.items():
        getattr(client, name).return_value = value
    return client


def _evm_lookup(mocker, results: list[dict]) -> tuple[EvmLookup, object]:
    client = mocker.Mock(spec=EtherscanClient)
    client.get_result_list.return_value = results
    return EvmLookup(client, "1"), client


# ---------------------------------------------------------------------------
# Solana
# ---------------------------------------------------------------------------

class TestSolanaLookup:
    def test_top_holders_resolve_owner_and_percentage(self, mocker):
        client = _sol_client(
            mocker,
            get_token_largest_accounts=[{"address": "acct1", "uiAmount": 250.0}, {"address": "acct2", "uiAmount": 50.0}],
            get_token_supply=1000.0,
        )
        client.get_account_owner.side_effect = lambda a: {"acct1": "owner1"}.get(a)

        holders = SolanaLookup(client).top_holders("mint")

        assert [h.address for h in holders] == ["owner1", "acct2"]
        assert holders[0].percentage == 25.0
        assert holders[1].balance == 50.0

    def test_no_accounts(self, mocker):
        client = _sol_client(mocker, get_token_largest_accounts=[])
        assert SolanaLookup(client).top_holders("mint") == []
        client.get_token_supply.assert_not_called()

    def test_wallet_age_from_oldest_signature(self, mocker):
        now = time.time()
        client = _sol_client(
            mocker,
            get_signatures=[{"blockTime": now - DAY}, {"blockTime": now - 10 * DAY - 60}, {"blockTime": None}],
        )
        assert SolanaLookup(client).wallet_age_days("wallet") == 10

    def test_wallet_age_unknown_without_signatures(self, mocker):
        client = _sol_client(mocker, get_signatures=[])
        assert SolanaLookup(client).wallet_age_days("wallet") is None

    def test_funding_source_is_oldest_incoming_native_transfer(self, mocker):
        client = _sol_client(
            mocker,
            get_enhanced_transactions=[
                {"nativeTransfers": [{"fromUserAccount": "recent", "toUserAccount": "wallet"}]},
                {"nativeTransfers": [{"fromUserAccount": "wallet", "toUserAccount": "elsewhere"}]},
                {"nativeTransfers": [{"fromUserAccount": "funder", "toUserAccount": "wallet"}]},
            ],
        )
        assert SolanaLookup(client).funding_source("wallet") == "funder"

    def test_funding_source_needs_enhanced_api(self, mocker):
        client = _sol_client(mocker)
        client.has_enhanced_api = False
        assert SolanaLookup(client).funding_source("wallet") is None
        client.get_enhanced_transactions.assert_not_called()

    def test_token_transfers_flatten_enhanced_transactions(self, mocker):
        client = _sol_client(
            mocker,
            get_enhanced_transactions=[
                {
                    "timestamp": 1_700_000_000,
                    "tokenTransfers": [
                        {"mint": "mint", "fromUserAccount": "a", "toUserAccount": "b", "tokenAmount": 5},
                        {"mint": "other", "fromUserAccount": "a", "toUserAccount": "b", "tokenAmount": 9},
                    ],
                }
            ],
        )
        transfers = SolanaLookup(client).token_transfers("mint")
        assert len(transfers) == 1
        assert (transfers[0].from_address, transfers[0].to_address, transfers[0].value) == ("a", "b", 5.0)
        assert transfers[0].timestamp == 1_700_000_000


# ---------------------------------------------------------------------------
# EVM
# ---------------------------------------------------------------------------

class TestEvmLookup:
    def test_top_holders_from_transfer_balances(self, mocker):
        zero = "0x0000000000000000000000000000000000000000"
        txs = [
            {"from": zero, "to": "0xA", "value": str(100 * 10**18), "tokenDecimal": "18"},
            {"from": "0xA", "to": "0xB", "value": str(40 * 10**18), "tokenDecimal": "18"},
            {"from": "0xA", "to": "0xC", "value": str(60 * 10**18), "tokenDecimal": "18"},
        ]
        lookup, _ = _evm_lookup(mocker, txs)

        holders = lookup.top_holders("0xToken")

        assert [h.address for h in holders] == ["0xc", "0xb"]
        assert holders[0].percentage == 60.0

    def test_wallet_age_from_first_transaction(self, mocker):
        lookup, client = _evm_lookup(mocker, [{"timeStamp": str(int(time.time() - 3 * DAY - 60))}])
        assert lookup.wallet_age_days("0xWallet") == 3
        assert client.get_result_list.call_args.kwargs["sort"] == "asc"

    def test_funding_source_is_first_incoming_transaction(self, mocker):
        lookup, _ = _evm_lookup(
            mocker,
            [
                {"from": "0xwallet", "to": "0xsomewhere"},
                {"from": "0xFunder", "to": "0xWALLET"},
            ],
        )
        assert lookup.funding_source("0xWallet") == "0xfunder"

    def test_funding_source_unknown(self, mocker):
        lookup, _ = _evm_lookup(mocker, [])
        assert lookup.funding_source("0xWallet") is None

    def test_token_transfers(self, mocker):
        lookup, _ = _evm_lookup(
            mocker,
            [{"from": "0xA", "to": "0xB", "value": "2500000", "tokenDecimal": "6", "timeStamp": "1700000000"}],
        )
        transfers = lookup.token_transfers("0xToken")
        assert transfers[0].from_address == "0xa"
        assert transfers[0].value == 2.5
        assert transfers[0].timestamp == 1_700_000_000.0


class TestLookupForChain:
    def _config(self, mocker):
        return mocker.Mock(helius_api_key="h", etherscan_api_key="e", http_timeout=5.0, http_max_retries=1)

    def test_solana(self, mocker):
        lookup = lookup_for_chain("SOLANA", self._config(mocker))
        assert isinstance(lookup, SolanaLookup)
        assert lookup.client.helius_api_key == "h"

    def test_evm_uses_chain_id(self, mocker):
        lookup = lookup_for_chain("base", self._config(mocker))
        assert isinstance(lookup, EvmLookup)
        assert lookup.chain_id == "8453"

    def test_unknown_chain(self, mocker):
        with pytest.raises(UnsupportedChainError):
            lookup_for_chain("DOGECHAIN", self._config(mocker))
