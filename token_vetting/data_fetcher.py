"""
Data fetcher module – thin clients for the third-party providers.

Clients return parsed JSON. Transport errors and 5xx responses are retried a
few times; when retries are exhausted, or a provider rejects the request,
ProviderError is raised so the orchestrator can record the source as failed.
A 404 means "nothing known about this token" and yields None.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from token_vetting.exceptions import ProviderError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_GOPLUS_API = "https://api.gopluslabs.io/api/v1"
_DEXSCREENER_API = "https://api.dexscreener.com"
_ETHERSCAN_API = "https://api.etherscan.io/v2/api"
_RUGCHECK_API = "https://api.rugcheck.xyz/v1"
_JUPITER_TOKENS_API = "https://token.jup.ag"
_HELIUS_RPC = "https://mainnet.helius-rpc.com/"
_HELIUS_API = "https://api.helius.xyz"
_PUBLIC_SOLANA_RPC = "https://api.mainnet-beta.solana.com"

_DEFAULT_TIMEOUT = 20  # seconds
_MAX_RETRIES = 2


def _request_with_retry(
    source: str,
    method: str,
    url: str,
    *,
    timeout: float,
    retries: int,
    **kwargs: Any,
) -> Any:
    last_exc: Exception | None = None
    for attempt in range(retries + 1):
        try:
            if method == "POST":
                resp = requests.post(url, timeout=timeout, **kwargs)
            else:
                resp = requests.get(url, timeout=timeout, **kwargs)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.Timeout as exc:
            last_exc = exc
            logger.warning("%s: timeout on attempt %d/%d", source, attempt + 1, retries + 1)
        except requests.exceptions.HTTPError as exc:
            # Don't retry 4xx client errors
            status = exc.response.status_code if exc.response is not None else None
            if status == 404:
                return None
            if status is not None and 400 <= status < 500:
                raise ProviderError(source, f"{source} API error: {status}") from exc
            last_exc = exc
            logger.warning("%s: HTTP error on attempt %d: %s", source, attempt + 1, exc)
        except requests.exceptions.JSONDecodeError as exc:
            raise ProviderError(source, f"{source} returned invalid JSON") from exc
        except requests.exceptions.RequestException as exc:
            last_exc = exc
            logger.warning("%s: request error on attempt %d: %s", source, attempt + 1, exc)

        if attempt < retries:
            time.sleep(1.5 ** attempt)

    raise ProviderError(source, f"{source} unavailable after {retries + 1} attempts: {last_exc}")


def _get_with_retry(
    source: str,
    url: str,
    params: dict | None = None,
    headers: dict | None = None,
    timeout: float = _DEFAULT_TIMEOUT,
    retries: int = _MAX_RETRIES,
) -> Any:
    """GET with retry logic. Returns parsed JSON, or None on 404."""
    return _request_with_retry(source, "GET", url, params=params, headers=headers, timeout=timeout, retries=retries)


def _post_with_retry(
    source: str,
    url: str,
    payload: dict,
    timeout: float = _DEFAULT_TIMEOUT,
    retries: int = _MAX_RETRIES,
) -> Any:
    """POST JSON with retry logic. Returns parsed JSON, or None on 404."""
    return _request_with_retry(source, "POST", url, json=payload, timeout=timeout, retries=retries)


class _HttpClient:
    source = "http"

    def __init__(self, timeout: float = _DEFAULT_TIMEOUT, max_retries: int = _MAX_RETRIES):
        self.timeout = timeout
        self.max_retries = max_retries

    def _get(self, url: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return _get_with_retry(self.source, url, params, headers, self.timeout, self.max_retries)

    def _post(self, url: str, payload: dict) -> Any:
        return _post_with_retry(self.source, url, payload, self.timeout, self.max_retries)


# ---------------------------------------------------------------------------
# Security and market providers
# ---------------------------------------------------------------------------

class GoPlusClient(_HttpClient):
    source = "goplus"

    def get_token_security(self, address: str, chain_id: str) -> dict | None:
        """Token security flags from GoPlus, or None when GoPlus has no data."""
        # Solana mints are case-sensitive, EVM addresses are keyed lower-case
        normalized = address if chain_id == "solana" else address.lower()
        data = self._get(
            f"{_GOPLUS_API}/token_security/{chain_id}",
            params={"contract_addresses": normalized},
        )
        if not data:
            return None
        if data.get("code") != 1:
            raise ProviderError(self.source, data.get("message") or "GoPlus API returned error")

        result = data.get("result") or {}
        return result.get(normalized) or result.get(address)


class DexScreenerClient(_HttpClient):
    source = "dexscreener"

    def get_token_pairs(self, address: str) -> dict | None:
        return self._get(f"{_DEXSCREENER_API}/latest/dex/tokens/{address}")


class EtherscanClient(_HttpClient):
    source = "etherscan"
    UNVERIFIED_RESULT = "Contract source code not verified"

    def __init__(self, api_key: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.api_key = api_key

    def query(self, chain_id: str, **params: Any) -> Any:
        """Raw Etherscan v2 call; returns the whole response body."""
        params = {"chainid": chain_id, **params}
        if self.api_key:
            params["apikey"] = self.api_key
        data = self._get(_ETHERSCAN_API, params=params)
        if data is None:
            raise ProviderError(self.source, "Etherscan API error: 404")
        return data

    def get_contract_source(self, address: str, chain_id: str) -> dict:
        data = self.query(chain_id, module="contract", action="getsourcecode", address=address)
        if data.get("status") != "1":
            result = data.get("result")
            # Unverified contracts come back as NOTOK; every other NOTOK is an API failure
            if result == self.UNVERIFIED_RESULT:
                return {"verified": False, "data": None}
            message = result if isinstance(result, str) and result else data.get("message")
            raise ProviderError(self.source, message or "Etherscan API error")

        result = data.get("result")
        contract = result[0] if isinstance(result, list) and result else result
        verified = bool(contract) and bool((contract or {}).get("SourceCode"))
        return {"verified": verified, "data": contract}

    def get_contract_creation(self, address: str, chain_id: str) -> dict | None:
        data = self.query(chain_id, module="contract", action="getcontractcreation", contractaddresses=address)
        if data.get("status") != "1":
            return None
        result = data.get("result") or []
        return result[0] if result else None

    def get_result_list(self, chain_id: str, **params: Any) -> list[dict]:
        """Account/token list endpoints; 'No transactions found' is an empty list."""
        data = self.query(chain_id, **params)
        result = data.get("result")
        if data.get("status") != "1" or not isinstance(result, list):
            if data.get("message", "").startswith("No "):
                return []
            if isinstance(result, str) and "rate limit" in result.lower():
                raise ProviderError(self.source, result)
            return []
        return result


class RugCheckClient(_HttpClient):
    source = "rugcheck"

    def __init__(self, api_key: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.api_key = api_key

    def get_report(self, mint: str) -> dict | None:
        """Full RugCheck report; None when RugCheck does not know the mint."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        report = self._get(f"{_RUGCHECK_API}/tokens/{mint}/report", headers=headers)
        if report is None:
            logger.info("RugCheck: no report found for %s", mint)
        return report


class JupiterClient(_HttpClient):
    source = "jupiter"

    CACHE_TTL = 5 * 60  # seconds

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self._verified: set[str] | None = None
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def _verified_tokens(self) -> set[str]:
        with self._lock:
            if self._verified is not None and time.monotonic() - self._fetched_at < self.CACHE_TTL:
                return self._verified

            tokens = self._get(f"{_JUPITER_TOKENS_API}/strict")
            if not isinstance(tokens, list):
                raise ProviderError(self.source, "Jupiter returned no token list")
            self._verified = {t.get("address") for t in tokens if t.get("address")}
            self._fetched_at = time.monotonic()
            return self._verified

    def is_verified(self, mint: str) -> bool:
        return mint in self._verified_tokens()


# ---------------------------------------------------------------------------
# Solana RPC / Helius
# ---------------------------------------------------------------------------

class SolanaRpcClient(_HttpClient):
    source = "solana_rpc"

    def __init__(self, helius_api_key: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.helius_api_key = helius_api_key

    @property
    def has_enhanced_api(self) -> bool:
        return bool(self.helius_api_key)

    def _rpc_url(self) -> str:
        if self.helius_api_key:
            return f"{_HELIUS_RPC}?api-key={self.helius_api_key}"
        return _PUBLIC_SOLANA_RPC

    def rpc(self, method: str, params: Any) -> Any:
        payload = {"jsonrpc": "2.0", "id": "1", "method": method, "params": params}
        data = self._post(self._rpc_url(), payload) or {}
        if data.get("error"):
            raise ProviderError(self.source, f"RPC {method} failed: {data['error']}")
        return data.get("result")

    def get_token_supply(self, mint: str) -> float:
        value = (self.rpc("getTokenSupply", [mint]) or {}).get("value") or {}
        try:
            return float(value.get("uiAmount") or value.get("uiAmountString") or 0)
        except (TypeError, ValueError):
            return 0.0

    def get_token_largest_accounts(self, mint: str) -> list[dict]:
        return (self.rpc("getTokenLargestAccounts", [mint]) or {}).get("value") or []

    def get_account_owner(self, account: str) -> str | None:
        value = (self.rpc("getAccountInfo", [account, {"encoding": "jsonParsed"}]) or {}).get("value") or {}
        parsed = (value.get("data") or {}).get("parsed") if isinstance(value.get("data"), dict) else None
        return ((parsed or {}).get("info") or {}).get("owner")

    def get_signatures(self, address: str, limit: int = 1000) -> list[dict]:
        return self.rpc("getSignaturesForAddress", [address, {"limit": limit}]) or []

    def get_enhanced_transactions(self, address: str, limit: int = 100) -> list[dict]:
        """Helius Enhanced Transactions for an address, newest first."""
        if not self.helius_api_key:
            return []
        result = self._get(
            f"{_HELIUS_API}/v0/addresses/{address}/transactions",
            params={"api-key": self.helius_api_key, "limit": min(limit, 100)},
        )
        return result if isinstance(result, list) else []


# ---------------------------------------------------------------------------
# Client bundle
# ---------------------------------------------------------------------------

@dataclass
class SourceClients:
    """The provider clients one orchestrator run talks to."""

    goplus: GoPlusClient = field(default_factory=GoPlusClient)
    dexscreener: DexScreenerClient = field(default_factory=DexScreenerClient)
    etherscan: EtherscanClient = field(default_factory=EtherscanClient)
    rugcheck: RugCheckClient = field(default_factory=RugCheckClient)
    jupiter: JupiterClient = field(default_factory=JupiterClient)

    @classmethod
    def from_config(cls, config) -> "SourceClients":
        http = {"timeout": config.http_timeout, "max_retries": config.http_max_retries}
        return cls(
            goplus=GoPlusClient(**http),
            dexscreener=DexScreenerClient(**http),
            etherscan=EtherscanClient(config.etherscan_api_key, **http),
            rugcheck=RugCheckClient(config.rugcheck_api_key, **http),
            jupiter=JupiterClient(**http),
        )
