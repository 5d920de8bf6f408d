from typing import Iterable

from fleet_monitor.config import DEFAULT_MAX_BLOCK_LAG
from fleet_monitor.models import ConsistencyReport, HealthSnapshot


def check(snapshots: Iterable[HealthSnapshot], max_lag: int = DEFAULT_MAX_BLOCK_LAG) -> ConsistencyReport:
    """
    Compare block heights across reachable nodes.

    Needs at least two heights; with fewer the check is skipped and never
    reports a violation. The lag limit is exclusive: a spread equal to
    `max_lag` is fine.
    """
    heights = {
        snapshot.endpoint.name: snapshot.block_height
        for snapshot in snapshots
        if snapshot.reachable and snapshot.block_height is not None
    }

    if len(heights) < 2:
        return ConsistencyReport(heights=heights, max_lag=0, exceeded=False, skipped=True)

    highest = max(heights.values())
    lowest = min(heights.values())
    lag = highest - lowest
    return ConsistencyReport(
        heights=heights,
        max_lag=lag,
        exceeded=lag > max_lag,
        max_height=highest,
        min_height=lowest,
    )
