"""
Supported chains and the provider identifiers each one maps to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from token_vetting.exceptions import UnsupportedChainError


class Chain(str, Enum):
    ETHEREUM = "ETHEREUM"
    BSC = "BSC"
    POLYGON = "POLYGON"
    ARBITRUM = "ARBITRUM"
    BASE = "BASE"
    OPTIMISM = "OPTIMISM"
    AVALANCHE = "AVALANCHE"
    SOLANA = "SOLANA"


@dataclass(frozen=True)
class ChainConfig:
    chain: Chain
    name: str
    goplus_chain_id: str
    etherscan_chain_id: str | None
    dexscreener_chain: str
    case_sensitive: bool = False

    @property
    def is_solana(self) -> bool:
        return self.chain is Chain.SOLANA

    def normalize_address(self, address: str) -> str:
        """EVM addresses compare case-insensitively; Solana base58 does not."""
        return address if self.case_sensitive else address.lower()


CHAINS: dict[Chain, ChainConfig] = {
    Chain.ETHEREUM: ChainConfig(Chain.ETHEREUM, "Ethereum", "1", "1", "ethereum"),
    Chain.BSC: ChainConfig(Chain.BSC, "BNB Chain", "56", "56", "bsc"),
    Chain.POLYGON: ChainConfig(Chain.POLYGON, "Polygon", "137", "137", "polygon"),
    Chain.ARBITRUM: ChainConfig(Chain.ARBITRUM, "Arbitrum", "42161", "42161", "arbitrum"),
    Chain.BASE: ChainConfig(Chain.BASE, "Base", "8453", "8453", "base"),
    Chain.OPTIMISM: ChainConfig(Chain.OPTIMISM, "Optimism", "10", "10", "optimism"),
    Chain.AVALANCHE: ChainConfig(Chain.AVALANCHE, "Avalanche", "43114", "43114", "avalanche"),
    Chain.SOLANA: ChainConfig(Chain.SOLANA, "Solana", "solana", None, "solana", case_sensitive=True),
}


def get_chain_config(chain: str | Chain) -> ChainConfig:
    """Resolve a stored chain identifier, raising UnsupportedChainError if unknown."""
    try:
        key = Chain(chain.upper() if isinstance(chain, str) else chain)
    except (ValueError, AttributeError):
        raise UnsupportedChainError(str(chain)) from None
    return CHAINS[key]
