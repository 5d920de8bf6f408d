from typing import Iterable, List

from fleet_monitor.config import DEFAULT_MIN_PEERS
from fleet_monitor.models import HealthSnapshot, Issue, NodeStatus, Severity


def evaluate(snapshot: HealthSnapshot, min_peers: int = DEFAULT_MIN_PEERS) -> List[Issue]:
    """
    Apply the node thresholds to one snapshot.

    An unreachable node gets a single CRITICAL issue and nothing else.
    Otherwise low peer count and syncing are checked independently.
    """
    name = snapshot.endpoint.name
    if not snapshot.reachable:
        return [Issue(Severity.CRITICAL, name, "unreachable")]

    issues = []
    if snapshot.peer_count is not None and snapshot.peer_count < min_peers:
        issues.append(
            Issue(Severity.WARNING, name, f"low peer count: {snapshot.peer_count} (min {min_peers})")
        )
    if snapshot.is_syncing is True:
        issues.append(Issue(Severity.WARNING, name, "node is syncing"))
    return issues


def classify(issues: Iterable[Issue]) -> NodeStatus:
    severities = {issue.severity for issue in issues}
    if Severity.CRITICAL in severities:
        return NodeStatus.FAIL
    if Severity.WARNING in severities:
        return NodeStatus.WARN
    return NodeStatus.OK
