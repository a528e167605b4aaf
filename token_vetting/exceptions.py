"""
Exceptions raised by the vetting core.

Fatal errors abort a run before any network call or write. ProviderError is
the only one the orchestrator absorbs: it becomes FAILED check rows.
"""

from __future__ import annotations


class VettingError(Exception):
    """Base class for all vetting errors."""


class ProcessNotFoundError(VettingError):
    def __init__(self, process_id: str):
        super().__init__(f"Vetting process not found: {process_id}")
        self.process_id = process_id


class TokenNotFoundError(VettingError):
    def __init__(self, token_id: str):
        super().__init__(f"Token not found: {token_id}")
        self.token_id = token_id


class UnsupportedChainError(VettingError):
    def __init__(self, chain: str):
        super().__init__(f"Unsupported chain: {chain}")
        self.chain = chain


class UnknownCheckTypeError(VettingError):
    def __init__(self, check_type: str):
        super().__init__(f"Invalid check type: {check_type}")
        self.check_type = check_type


class ProviderError(VettingError):
    """A data provider call failed (transport, HTTP status or API-level error)."""

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source


class InvalidCheckStateError(VettingError, ValueError):
    """A check record is COMPLETED but carries no pass/fail verdict."""
