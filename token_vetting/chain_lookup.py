"""
Chain lookups – per-wallet and per-token queries the holder analyzer needs.

Lookups are blocking; the analyzer runs them in worker threads. A lookup
that finds nothing returns None or an empty list, a provider failure raises
ProviderError.
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Optional

from token_vetting.chains import Chain, get_chain_config
from token_vetting.data_fetcher import EtherscanClient, SolanaRpcClient
from token_vetting.models import Holder, Transfer

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86_400
_ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _age_in_days(first_seen: float, now: Optional[float] = None) -> int:
    now = time.time() if now is None else now
    return max(0, math.floor((now - first_seen) / _SECONDS_PER_DAY))


class WalletLookup(ABC):
    """Chain-specific lookups used by the holder analyzer."""

    @abstractmethod
    def top_holders(self, token: str, limit: int = 50) -> list[Holder]:
        ...

    @abstractmethod
    def token_transfers(self, token: str, limit: int = 100) -> list[Transfer]:
        ...

    @abstractmethod
    def wallet_age_days(self, address: str) -> Optional[int]:
        """Days since the wallet's oldest visible transaction, or None."""

    @abstractmethod
    def funding_source(self, address: str) -> Optional[str]:
        """Address that sent the wallet its first incoming funds, or None."""


# ---------------------------------------------------------------------------
# Solana
# ---------------------------------------------------------------------------

class SolanaLookup(WalletLookup):
    SIGNATURE_PAGE = 1000

    def __init__(self, client: SolanaRpcClient):
        self.client = client

    def top_holders(self, token: str, limit: int = 50) -> list[Holder]:
        accounts = self.client.get_token_largest_accounts(token)
        if not accounts:
            return []

        total_supply = self.client.get_token_supply(token)
        holders: list[Holder] = []
        for account in accounts[:limit]:
            try:
                balance = float(account.get("uiAmount") or 0)
            except (TypeError, ValueError):
                balance = 0.0
            pct = round(balance / total_supply * 100, 4) if total_supply > 0 else 0.0

            # Largest accounts are token accounts; resolve the owning wallet
            address = account.get("address", "")
            owner = self.client.get_account_owner(address) if address else None
            holders.append(Holder(address=owner or address, balance=balance, percentage=pct))

        logger.debug("Solana: %d top holders for %s", len(holders), token)
        return holders

    def token_transfers(self, token: str, limit: int = 100) -> list[Transfer]:
        transfers: list[Transfer] = []
        for txn in self.client.get_enhanced_transactions(token, limit):
            ts = txn.get("timestamp")
            for tt in txn.get("tokenTransfers") or []:
                if tt.get("mint") not in (None, token):
                    continue
                sender = tt.get("fromUserAccount")
                receiver = tt.get("toUserAccount")
                if not sender or not receiver:
                    continue
                try:
                    value = float(tt.get("tokenAmount") or 0)
                except (TypeError, ValueError):
                    value = 0.0
                transfers.append(Transfer(sender, receiver, value, ts))
        return transfers

    def wallet_age_days(self, address: str) -> Optional[int]:
        signatures = self.client.get_signatures(address, self.SIGNATURE_PAGE)
        block_times = [s["blockTime"] for s in signatures if s.get("blockTime")]
        if not block_times:
            return None
        # Signatures come newest first; wallets with more history look older than this
        return _age_in_days(min(block_times))

    def funding_source(self, address: str) -> Optional[str]:
        if not self.client.has_enhanced_api:
            return None

        oldest_first = reversed(self.client.get_enhanced_transactions(address))
        for txn in oldest_first:
            for nt in txn.get("nativeTransfers") or []:
                if nt.get("toUserAccount") == address and nt.get("fromUserAccount") not in (None, address):
                    return nt["fromUserAccount"]
        return None


# ---------------------------------------------------------------------------
# EVM (Etherscan v2)
# ---------------------------------------------------------------------------

class EvmLookup(WalletLookup):
    TRANSFER_WINDOW = 10_000
    FUNDING_WINDOW = 5

    def __init__(self, client: EtherscanClient, chain_id: str):
        self.client = client
        self.chain_id = chain_id

    def _token_txs(self, token: str, offset: int) -> list[dict]:
        return self.client.get_result_list(
            self.chain_id,
            module="account",
            action="tokentx",
            contractaddress=token,
            page=1,
            offset=offset,
            sort="desc",
        )

    @staticmethod
    def _value(tx: dict) -> float:
        try:
            decimals = int(tx.get("tokenDecimal") or 18)
            return float(tx.get("value") or 0) / 10 ** decimals
        except (TypeError, ValueError):
            return 0.0

    def top_holders(self, token: str, limit: int = 50) -> list[Holder]:
        """Balances reconstructed from the most recent transfers."""
        balances: dict[str, float] = defaultdict(float)
        for tx in self._token_txs(token, self.TRANSFER_WINDOW):
            sender = (tx.get("from") or "").lower()
            receiver = (tx.get("to") or "").lower()
            value = self._value(tx)
            if sender and sender != _ZERO_ADDRESS:
                balances[sender] -= value
            if receiver:
                balances[receiver] += value

        ranked = sorted(
            ((addr, bal) for addr, bal in balances.items() if bal > 0),
            key=lambda item: item[1],
            reverse=True,
        )[:limit]
        total = sum(bal for _, bal in ranked)
        return [
            Holder(address=addr, balance=bal, percentage=round(bal / total * 100, 4) if total > 0 else 0.0)
            for addr, bal in ranked
        ]

    def token_transfers(self, token: str, limit: int = 100) -> list[Transfer]:
        transfers: list[Transfer] = []
        for tx in self._token_txs(token, limit):
            if not tx.get("from") or not tx.get("to"):
                continue
            try:
                ts = float(tx["timeStamp"]) if tx.get("timeStamp") else None
            except (TypeError, ValueError):
                ts = None
            transfers.append(Transfer(tx["from"].lower(), tx["to"].lower(), self._value(tx), ts))
        return transfers

    def _first_txs(self, address: str, offset: int) -> list[dict]:
        return self.client.get_result_list(
            self.chain_id,
            module="account",
            action="txlist",
            address=address,
            startblock=0,
            endblock=99999999,
            page=1,
            offset=offset,
            sort="asc",
        )

    def wallet_age_days(self, address: str) -> Optional[int]:
        txs = self._first_txs(address, 1)
        if not txs or not txs[0].get("timeStamp"):
            return None
        return _age_in_days(float(txs[0]["timeStamp"]))

    def funding_source(self, address: str) -> Optional[str]:
        target = address.lower()
        for tx in self._first_txs(address, self.FUNDING_WINDOW):
            if (tx.get("to") or "").lower() == target and tx.get("from"):
                return tx["from"].lower()
        return None


def lookup_for_chain(chain: str | Chain, config) -> WalletLookup:
    """Build the lookup for a chain from a Config instance."""
    chain_config = get_chain_config(chain)
    http = {"timeout": config.http_timeout, "max_retries": config.http_max_retries}
    if chain_config.is_solana:
        return SolanaLookup(SolanaRpcClient(config.helius_api_key, **http))
    return EvmLookup(EtherscanClient(config.etherscan_api_key, **http), chain_config.etherscan_chain_id)
