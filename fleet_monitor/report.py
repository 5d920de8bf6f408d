from typing import List

from fleet_monitor.models import NodeResult, NodeStatus, OverallStatus, PassResult

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
NC = "\033[0m"

RULE = "=" * 42


class Palette:
    """ANSI colours for terminal output, or nothing"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def paint(self, color: str, text: str) -> str:
        return f"{color}{text}{NC}" if self.enabled else text

    def tag(self, status) -> str:
        color = {"OK": GREEN, "WARN": YELLOW, "DEGRADED": YELLOW, "FAIL": RED}[status.value]
        return self.paint(color, f"[{status.value}]")


def _fmt(value) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def node_line(node: NodeResult, palette: Palette) -> str:
    snapshot = node.snapshot
    name = snapshot.endpoint.name
    if node.status is NodeStatus.FAIL:
        return f"{palette.tag(node.status)} {name}: not responding ({snapshot.error or 'unreachable'})"

    details = f"block={_fmt(snapshot.block_height)}, peers={_fmt(snapshot.peer_count)}, syncing={_fmt(snapshot.is_syncing)}"
    if node.status is NodeStatus.WARN:
        problems = "; ".join(issue.description for issue in node.issues)
        return f"{palette.tag(node.status)} {name}: {problems} ({details})"
    return f"{palette.tag(node.status)} {name}: {details}"


def render(result: PassResult, color: bool = False) -> List[str]:
    """Render a pass as report lines, without trailing newlines."""
    palette = Palette(color)
    stamp = result.started_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")

    lines = ["", RULE, "  Validator Fleet Monitor", f"  {stamp}", RULE, ""]
    lines.extend(node_line(node, palette) for node in result.nodes)
    lines.append("")

    report = result.consistency
    if report.skipped:
        lines.append(f"{palette.paint(YELLOW, '[SKIP]')} Block sync: fewer than 2 reachable nodes")
    elif report.exceeded:
        lines.append(
            f"{palette.tag(NodeStatus.WARN)} Block sync lag: {report.max_lag} blocks "
            f"(max: {report.max_height}, min: {report.min_height})"
        )
    else:
        lines.append(f"{palette.tag(NodeStatus.OK)} Block sync: all nodes within {report.max_lag} blocks")
    lines.append("")

    aux = result.auxiliary
    if aux is None:
        lines.append(f"{palette.paint(YELLOW, '[SKIP]')} Faucet: not configured")
    elif not aux.reachable:
        lines.append(f"{palette.tag(NodeStatus.FAIL)} Faucet: not responding")
    elif not aux.healthy:
        lines.append(f"{palette.tag(NodeStatus.WARN)} Faucet: unhealthy")
    else:
        extra = ""
        if aux.validators_online is not None:
            extra = f" (validators online: {aux.validators_online}, block: {_fmt(aux.block_height)})"
        lines.append(f"{palette.tag(NodeStatus.OK)} Faucet: healthy{extra}")

    lines.extend(["", RULE])
    status = result.overall_status
    if status is OverallStatus.OK:
        summary = "Status: All systems operational"
    else:
        summary = f"Status: {status.value} - {result.nodes_with_issues} validator(s) with issues"
    summary_color = {OverallStatus.OK: GREEN, OverallStatus.DEGRADED: YELLOW, OverallStatus.FAIL: RED}[status]
    lines.append(palette.paint(summary_color, summary))
    return lines
