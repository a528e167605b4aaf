"""
Domain types shared by the orchestrator, the holder analyzer and the scorer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from token_vetting.exceptions import InvalidCheckStateError


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CheckStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class CheckKind(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class Outcome(str, Enum):
    """Verdict of a single check. UNDECIDABLE is not a failure."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    UNDECIDABLE = "UNDECIDABLE"

    @classmethod
    def from_passed(cls, passed: Optional[bool]) -> "Outcome":
        if passed is None:
            return cls.UNDECIDABLE
        return cls.PASSED if passed else cls.FAILED

    @property
    def passed(self) -> Optional[bool]:
        if self is Outcome.UNDECIDABLE:
            return None
        return self is Outcome.PASSED

    @property
    def decided(self) -> bool:
        return self is not Outcome.UNDECIDABLE


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class ProcessStatus(str, Enum):
    PENDING = "PENDING"
    AUTO_RUNNING = "AUTO_RUNNING"
    AUTO_COMPLETE = "AUTO_COMPLETE"
    IN_REVIEW = "IN_REVIEW"
    REVIEW_COMPLETE = "REVIEW_COMPLETE"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def terminal(self) -> bool:
        return self in (ProcessStatus.APPROVED, ProcessStatus.REJECTED)


class FlagSource(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


# ---------------------------------------------------------------------------
# Persistent records
# ---------------------------------------------------------------------------

@dataclass
class Token:
    id: str
    chain: str
    contract_address: str
    name: Optional[str] = None
    symbol: Optional[str] = None


@dataclass
class VettingProcess:
    id: str
    token_id: str
    status: ProcessStatus = ProcessStatus.PENDING
    automatic_score: Optional[int] = None
    manual_score: Optional[int] = None
    overall_score: Optional[int] = None
    risk_level: Optional[RiskLevel] = None
    started_at: Optional[datetime] = None


@dataclass
class CheckRecord:
    """One stored result, unique per (process_id, check_type, kind)."""

    process_id: str
    check_type: str
    status: CheckStatus
    outcome: Outcome
    severity: Severity
    details: str = ""
    score: Optional[int] = None
    raw_data: Any = None
    notes: Optional[str] = None
    reviewer: Optional[str] = None
    checked_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.status is CheckStatus.COMPLETED and not self.outcome.decided:
            raise InvalidCheckStateError(
                f"{self.check_type}: a COMPLETED check must be passed or failed"
            )

    @property
    def passed(self) -> Optional[bool]:
        return self.outcome.passed


@dataclass(frozen=True)
class RedFlag:
    flag: str
    severity: Severity
    source: FlagSource
    check_type: str
    details: Optional[str] = None


@dataclass(frozen=True)
class GreenFlag:
    flag: str
    source: FlagSource
    check_type: str


@dataclass
class Activity:
    process_id: str
    action: str
    details: dict
    created_at: datetime = field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Check bundles (provider / holder analyzer output)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckEntry:
    outcome: Outcome
    value: Any = None
    details: str = ""
    severity: Optional[Severity] = None
    raw_data: Any = None

    @property
    def passed(self) -> Optional[bool]:
        return self.outcome.passed


@dataclass
class CheckBundle:
    """Normalized output of one data source, keyed by AutoCheck member."""

    source: str
    checks: dict = field(default_factory=dict)
    raw_data: Any = None
    token_name: Optional[str] = None
    token_symbol: Optional[str] = None
    skipped: bool = False


# ---------------------------------------------------------------------------
# Holder analysis
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Holder:
    address: str
    balance: float = 0.0
    percentage: float = 0.0


@dataclass(frozen=True)
class Transfer:
    from_address: str
    to_address: str
    value: float = 0.0
    timestamp: Optional[float] = None


@dataclass
class HolderTrace:
    """A sampled holder annotated with what the lookups resolved."""

    holder: Holder
    age_days: Optional[int] = None
    funding_source: Optional[str] = None
    cluster_id: Optional[int] = None

    @property
    def address(self) -> str:
        return self.holder.address


@dataclass
class WalletCluster:
    cluster_id: int
    funding_source: str
    wallets: list

    @property
    def size(self) -> int:
        return len(self.wallets)


# ---------------------------------------------------------------------------
# Run errors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceError:
    """A data source (or one of its checks) that failed during a run."""

    source: str
    error: str
    check: Optional[str] = None

    def to_dict(self) -> dict:
        return {"source": self.source, "error": self.error, "check": self.check}
