"""
Configuration module for the token vetting core.
Loads API keys and settings from .env file.
"""

import logging
import os
import warnings
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

# Load .env file from project root
_project_root = Path(__file__).parent.parent
load_dotenv(_project_root / ".env")


class Config:
    """Centralised configuration loaded from environment variables."""

    def __init__(self):
        self.helius_api_key: str | None = self._optional("HELIUS_API_KEY")
        self.etherscan_api_key: str | None = self._optional("ETHERSCAN_API_KEY")
        self.rugcheck_api_key: str | None = self._optional("RUGCHECK_API_KEY")
        self.output_dir: str = os.getenv("OUTPUT_DIR", "./output")

        self.http_timeout: float = self._number("HTTP_TIMEOUT", 20.0, float)
        self.http_max_retries: int = self._number("HTTP_MAX_RETRIES", 2, int, allow_zero=True)
        self.holder_sample_size: int = self._number("HOLDER_SAMPLE_SIZE", 10, int)
        self.holder_lookup_concurrency: int = self._number("HOLDER_LOOKUP_CONCURRENCY", 4, int)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        if not self.helius_api_key:
            warnings.warn(
                "HELIUS_API_KEY not set. Solana holder analysis falls back to the public RPC "
                "and cannot resolve funding sources or token transfers.",
                UserWarning,
                stacklevel=2,
            )
        if not self.etherscan_api_key:
            warnings.warn(
                "ETHERSCAN_API_KEY not set. EVM contract checks and holder analysis will "
                "be rate limited or unavailable.",
                UserWarning,
                stacklevel=2,
            )

    @staticmethod
    def _optional(key: str) -> str | None:
        return os.getenv(key) or None

    @staticmethod
    def _number(key: str, default, cast, allow_zero: bool = False):
        value = os.getenv(key)
        if not value:
            return default
        try:
            parsed = cast(value)
        except ValueError:
            raise EnvironmentError(
                f"Environment variable '{key}' must be a {cast.__name__}, got '{value}'."
            ) from None
        if parsed < 0 or (parsed == 0 and not allow_zero):
            limit = "non-negative" if allow_zero else "positive"
            raise EnvironmentError(f"Environment variable '{key}' must be {limit}, got '{value}'.")
        return parsed


def get_config() -> Config:
    """Return a Config instance, raising EnvironmentError if a setting is malformed."""
    return Config()


def configure_logging(level: str = "INFO") -> None:
    """Route the package's loggers through rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # urllib3 retries are already reported by the fetcher
    logging.getLogger("urllib3").setLevel(logging.WARNING)
