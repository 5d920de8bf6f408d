"""
Value types for one monitoring pass.

Everything here is immutable. Snapshots, issues and reports are built fresh
each pass and thrown away once the report has been written; only the alert
events end up on disk.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class NodeStatus(str, Enum):
    """Classification of a single node"""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


class OverallStatus(str, Enum):
    """Verdict for a whole pass"""

    OK = "OK"
    DEGRADED = "DEGRADED"
    FAIL = "FAIL"

    @property
    def exit_code(self) -> int:
        return {"OK": 0, "DEGRADED": 1, "FAIL": 2}[self.value]


@dataclass(frozen=True)
class ValidatorEndpoint:
    name: str
    rpc_url: str


@dataclass(frozen=True)
class HealthSnapshot:
    """Result of polling one node once"""

    endpoint: ValidatorEndpoint
    reachable: bool
    peer_count: Optional[int] = None
    is_syncing: Optional[bool] = None
    block_height: Optional[int] = None
    timestamp: datetime = field(default_factory=utc_now)
    error: Optional[str] = None

    @classmethod
    def unreachable(cls, endpoint: ValidatorEndpoint, error: str) -> "HealthSnapshot":
        return cls(endpoint=endpoint, reachable=False, error=error)


@dataclass(frozen=True)
class Issue:
    severity: Severity
    endpoint_name: str
    description: str


@dataclass(frozen=True)
class ConsistencyReport:
    heights: Dict[str, int]
    max_lag: int
    exceeded: bool
    skipped: bool = False
    max_height: Optional[int] = None
    min_height: Optional[int] = None


@dataclass(frozen=True)
class AuxiliaryHealth:
    """Health of the faucet service"""

    reachable: bool
    healthy: Optional[bool] = None
    validators_online: Optional[int] = None
    block_height: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reachable and self.healthy is True


@dataclass(frozen=True)
class AlertEvent:
    level: Severity
    message: str
    timestamp: datetime = field(default_factory=utc_now)

    def format_line(self) -> str:
        ts = self.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        return f"[{ts}] [{self.level.value}] {self.message}"


@dataclass(frozen=True)
class NodeResult:
    """Snapshot of one node together with what the evaluator made of it"""

    snapshot: HealthSnapshot
    issues: Tuple[Issue, ...]
    status: NodeStatus


@dataclass(frozen=True)
class PassResult:
    nodes: Tuple[NodeResult, ...]
    consistency: ConsistencyReport
    auxiliary: Optional[AuxiliaryHealth]
    started_at: datetime
    finished_at: datetime

    @property
    def issues(self) -> Tuple[Issue, ...]:
        return tuple(issue for node in self.nodes for issue in node.issues)

    @property
    def nodes_with_issues(self) -> int:
        return sum(1 for node in self.nodes if node.issues)

    @property
    def overall_status(self) -> OverallStatus:
        if any(node.status is NodeStatus.FAIL for node in self.nodes):
            return OverallStatus.FAIL
        if any(node.status is NodeStatus.WARN for node in self.nodes):
            return OverallStatus.DEGRADED
        if self.consistency.exceeded:
            return OverallStatus.DEGRADED
        if self.auxiliary is not None and not self.auxiliary.ok:
            return OverallStatus.DEGRADED
        return OverallStatus.OK
