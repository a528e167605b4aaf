"""
Checks repository – persistence contract used by the orchestrator, plus an
in-memory implementation for the CLI and tests.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from token_vetting.chains import get_chain_config
from token_vetting.exceptions import ProcessNotFoundError, TokenNotFoundError
from token_vetting.models import (
    Activity,
    CheckKind,
    CheckRecord,
    GreenFlag,
    RedFlag,
    Token,
    VettingProcess,
)


class ChecksRepository(ABC):
    @abstractmethod
    def get_process(self, process_id: str) -> Optional[VettingProcess]:
        ...

    @abstractmethod
    def get_token(self, token_id: str) -> Optional[Token]:
        ...

    @abstractmethod
    def update_token(self, token_id: str, **fields) -> Token:
        ...

    @abstractmethod
    def upsert_check(self, process_id: str, check_type: str, record: CheckRecord, kind: CheckKind) -> CheckRecord:
        """Insert or overwrite the row keyed by (process_id, check_type, kind)."""

    @abstractmethod
    def find_checks(self, process_id: str, kind: CheckKind) -> list[CheckRecord]:
        ...

    @abstractmethod
    def update_process(self, process_id: str, **fields) -> VettingProcess:
        ...

    @abstractmethod
    def replace_flags(self, process_id: str, red: list[RedFlag], green: list[GreenFlag]) -> None:
        """Delete the process's flags and insert the new ones as one unit."""

    @abstractmethod
    def find_flags(self, process_id: str) -> tuple[list[RedFlag], list[GreenFlag]]:
        ...

    @abstractmethod
    def append_activity(self, process_id: str, action: str, details: dict) -> Activity:
        ...


class InMemoryChecksRepository(ChecksRepository):
    """Dict-backed repository. A single lock serialises every operation."""

    def __init__(self):
        self._lock = threading.RLock()
        self._tokens: dict[str, Token] = {}
        self._processes: dict[str, VettingProcess] = {}
        self._checks: dict[tuple[str, str, CheckKind], CheckRecord] = {}
        self._flags: dict[str, tuple[list[RedFlag], list[GreenFlag]]] = {}
        self._activities: list[Activity] = []

    # ---------------------------------------------------------------------------
    # Creation helpers
    # ---------------------------------------------------------------------------

    def create_token(self, chain: str, contract_address: str, name: str | None = None,
                     symbol: str | None = None) -> Token:
        """Register a token, or return the existing one for the same chain and address."""
        chain_config = get_chain_config(chain)
        key = chain_config.normalize_address(contract_address)
        with self._lock:
            for token in self._tokens.values():
                if token.chain == chain_config.chain.value and chain_config.normalize_address(
                    token.contract_address
                ) == key:
                    return token
            token = Token(
                id=uuid.uuid4().hex,
                chain=chain_config.chain.value,
                contract_address=contract_address,
                name=name,
                symbol=symbol,
            )
            self._tokens[token.id] = token
            return token

    def create_process(self, token_id: str) -> VettingProcess:
        """Start vetting a token; a token has at most one non-terminal process."""
        with self._lock:
            if token_id not in self._tokens:
                raise TokenNotFoundError(token_id)
            for process in self._processes.values():
                if process.token_id == token_id and not process.status.terminal:
                    return process
            process = VettingProcess(id=uuid.uuid4().hex, token_id=token_id)
            self._processes[process.id] = process
            return process

    # ---------------------------------------------------------------------------
    # ChecksRepository
    # ---------------------------------------------------------------------------

    def get_process(self, process_id: str) -> Optional[VettingProcess]:
        with self._lock:
            return self._processes.get(process_id)

    def get_token(self, token_id: str) -> Optional[Token]:
        with self._lock:
            return self._tokens.get(token_id)

    def update_token(self, token_id: str, **fields) -> Token:
        with self._lock:
            token = self._tokens.get(token_id)
            if token is None:
                raise TokenNotFoundError(token_id)
            token = replace(token, **fields)
            self._tokens[token_id] = token
            return token

    def upsert_check(self, process_id: str, check_type: str, record: CheckRecord, kind: CheckKind) -> CheckRecord:
        with self._lock:
            if process_id not in self._processes:
                raise ProcessNotFoundError(process_id)
            self._checks[(process_id, check_type, kind)] = record
            return record

    def find_checks(self, process_id: str, kind: CheckKind) -> list[CheckRecord]:
        with self._lock:
            return [
                record for (pid, _, k), record in self._checks.items() if pid == process_id and k is kind
            ]

    def update_process(self, process_id: str, **fields) -> VettingProcess:
        with self._lock:
            process = self._processes.get(process_id)
            if process is None:
                raise ProcessNotFoundError(process_id)
            process = replace(process, **fields)
            self._processes[process_id] = process
            return process

    def replace_flags(self, process_id: str, red: list[RedFlag], green: list[GreenFlag]) -> None:
        with self._lock:
            self._flags[process_id] = (list(red), list(green))

    def find_flags(self, process_id: str) -> tuple[list[RedFlag], list[GreenFlag]]:
        with self._lock:
            red, green = self._flags.get(process_id, ([], []))
            return list(red), list(green)

    def append_activity(self, process_id: str, action: str, details: dict) -> Activity:
        activity = Activity(process_id=process_id, action=action, details=details)
        with self._lock:
            self._activities.append(activity)
        return activity

    def find_activities(self, process_id: str) -> list[Activity]:
        with self._lock:
            return [a for a in self._activities if a.process_id == process_id]
