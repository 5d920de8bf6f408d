"""
One monitoring pass over the validator fleet.

    INIT -> POLLING -> EVALUATING -> CONSISTENCY_CHECK -> AUX_PROBE -> REPORTING -> DONE

Nodes are polled concurrently (at most `max_concurrency` at a time) and the
pass waits for all of them before evaluating. Every network call carries its
own timeout, so the pass always finishes. Nothing survives between passes
except what the AlertSink wrote.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

import aiohttp

from fleet_monitor import consistency, evaluator, faucet_probe, report
from fleet_monitor.alerts import AlertSink
from fleet_monitor.config import MonitorConfig
from fleet_monitor.models import (
    AuxiliaryHealth,
    ConsistencyReport,
    HealthSnapshot,
    NodeResult,
    PassResult,
    Severity,
    ValidatorEndpoint,
    utc_now,
)
from fleet_monitor.poller import NodePoller
from fleet_monitor.rpc_client import RpcClient

logger = logging.getLogger(__name__)
report_logger = logging.getLogger("fleet_monitor.report")


class PassState(str, Enum):
    INIT = "INIT"
    POLLING = "POLLING"
    EVALUATING = "EVALUATING"
    CONSISTENCY_CHECK = "CONSISTENCY_CHECK"
    AUX_PROBE = "AUX_PROBE"
    REPORTING = "REPORTING"
    DONE = "DONE"


class FleetMonitor:
    """Runs monitoring passes for a fixed list of validators"""

    def __init__(
        self,
        config: MonitorConfig,
        sink: AlertSink,
        poller: Optional[NodePoller] = None,
        output: Optional[Callable[[str], None]] = None,
        color: bool = False,
    ):
        self.config = config
        self.validators: Sequence[ValidatorEndpoint] = tuple(config.validators)
        self.sink = sink
        self.poller = poller
        self.output = output
        self.color = color
        self.state = PassState.INIT

    def _enter(self, state: PassState):
        logger.debug(f"pass state {self.state.value} -> {state.value}")
        self.state = state

    async def _poll_one(self, poller: NodePoller, semaphore: asyncio.Semaphore, endpoint: ValidatorEndpoint) -> HealthSnapshot:
        async with semaphore:
            try:
                return await poller.poll(endpoint, self.config.rpc_timeout)
            except Exception as e:
                logger.exception(f"Unexpected error polling {endpoint.name}")
                return HealthSnapshot.unreachable(endpoint, f"poll error: {e!r}")

    async def poll_all(self, session: Optional[aiohttp.ClientSession] = None) -> List[HealthSnapshot]:
        poller = self.poller or NodePoller(
            RpcClient(session),
            health_method=self.config.health_method,
            head_method=self.config.head_method,
        )
        semaphore = asyncio.Semaphore(self.config.max_concurrency)
        return list(
            await asyncio.gather(*(self._poll_one(poller, semaphore, endpoint) for endpoint in self.validators))
        )

    async def _alert(self, level: Severity, message: str):
        # hooks may block on the network, keep them off the event loop
        await asyncio.to_thread(self.sink.alert, level, message)

    async def evaluate_nodes(self, snapshots: Sequence[HealthSnapshot]) -> List[NodeResult]:
        results = []
        for snapshot in snapshots:
            issues = tuple(evaluator.evaluate(snapshot, self.config.min_peers))
            endpoint = snapshot.endpoint
            for issue in issues:
                if issue.severity is Severity.CRITICAL:
                    await self._alert(Severity.CRITICAL, f"{endpoint.name} ({endpoint.rpc_url}) is not responding!")
                else:
                    await self._alert(Severity.WARNING, f"{endpoint.name}: {issue.description}")
            results.append(NodeResult(snapshot=snapshot, issues=issues, status=evaluator.classify(issues)))
        return results

    async def check_consistency(self, snapshots: Sequence[HealthSnapshot]) -> ConsistencyReport:
        lag_report = consistency.check(snapshots, self.config.max_block_lag)
        if lag_report.exceeded:
            await self._alert(
                Severity.WARNING,
                f"Block height lag detected: {lag_report.max_lag} blocks "
                f"(max: {lag_report.max_height}, min: {lag_report.min_height})",
            )
        elif lag_report.skipped:
            logger.info(f"Block sync check skipped: {len(lag_report.heights)} reachable node(s)")
        return lag_report

    async def probe_faucet(self, session: Optional[aiohttp.ClientSession] = None) -> Optional[AuxiliaryHealth]:
        if not self.config.faucet_url:
            logger.info("No faucet URL configured, skipping faucet probe")
            return None

        try:
            health = await faucet_probe.probe(self.config.faucet_url, self.config.rpc_timeout, session)
        except Exception as e:
            logger.exception("Unexpected error probing the faucet")
            health = AuxiliaryHealth(reachable=False, error=f"probe error: {e!r}")

        if not health.reachable:
            await self._alert(Severity.WARNING, "Faucet is not responding!")
        elif not health.healthy:
            await self._alert(Severity.WARNING, "Faucet reports unhealthy status")
        return health

    async def run_pass(self) -> PassResult:
        """Run one full pass and return its result."""
        self.state = PassState.INIT
        started_at = utc_now()
        logger.info(f"Starting pass over {len(self.validators)} validator(s)")

        async with aiohttp.ClientSession() as session:
            self._enter(PassState.POLLING)
            snapshots = await self.poll_all(session)

            self._enter(PassState.EVALUATING)
            nodes = await self.evaluate_nodes(snapshots)

            self._enter(PassState.CONSISTENCY_CHECK)
            consistency_report = await self.check_consistency(snapshots)

            self._enter(PassState.AUX_PROBE)
            auxiliary = await self.probe_faucet(session)

        self._enter(PassState.REPORTING)
        result = PassResult(
            nodes=tuple(nodes),
            consistency=consistency_report,
            auxiliary=auxiliary,
            started_at=started_at,
            finished_at=utc_now(),
        )
        logger.info(
            f"Pass finished: status={result.overall_status.value}, "
            f"{result.nodes_with_issues} validator(s) with issues"
        )
        self.emit_report(result)

        self._enter(PassState.DONE)
        return result

    def emit_report(self, result: PassResult):
        """Write the report to the output callable and to the routine log."""
        if self.output is not None:
            for line in report.render(result, color=self.color):
                self.output(line)
        for line in report.render(result, color=False):
            if line:
                report_logger.info(line)
