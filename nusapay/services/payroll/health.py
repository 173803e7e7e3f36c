"""
RPC health indicator.

A block-number check tells whether the node is reachable; RpcHealthMonitor
re-runs it on a fixed interval so a display layer can show a persistent
connectivity badge. `is_rpc_outage_error` matches error strings against
known outage signatures for the dismissible outage banner.
"""

from datetime import datetime, timezone
from typing import Optional
import logging

from ...config.blockchain_config import REFRESH_INTERVAL_SECONDS, RPC_OUTAGE_SIGNATURES
from .base import call_rpc
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


async def check_rpc_health(reader) -> bool:
    """True when the node answers a block-number request."""
    result = await call_rpc("health check", reader.get_block_number())
    return result.ok


def is_rpc_outage_error(message: Optional[str]) -> bool:
    """True when an error message looks like the RPC node is down or throttling."""
    if not message:
        return False
    lowered = message.lower()
    return any(signature in lowered for signature in RPC_OUTAGE_SIGNATURES)


class RpcHealthMonitor:
    """Tracks node reachability; `is_healthy` stays None until the first check."""

    def __init__(self, reader, interval: float = REFRESH_INTERVAL_SECONDS):
        self.reader = reader
        self.is_healthy: Optional[bool] = None
        self.is_checking = False
        self.last_checked: Optional[datetime] = None
        self._task = PeriodicTask("rpc-health", interval, self.check_now, run_immediately=True)

    @property
    def status_label(self) -> str:
        if self.is_checking:
            return "Checking..."
        if self.is_healthy is None:
            return "Unknown"
        return "RPC Connected" if self.is_healthy else "RPC Issues"

    async def check_now(self) -> bool:
        """Check the node once (also what the retry button calls)."""
        self.is_checking = True
        try:
            healthy = await check_rpc_health(self.reader)
        finally:
            self.is_checking = False

        if healthy != self.is_healthy:
            log = logger.info if healthy else logger.warning
            log(f"RPC health changed: {'connected' if healthy else 'unreachable'}")
        self.is_healthy = healthy
        self.last_checked = datetime.now(timezone.utc)
        return healthy

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    @property
    def is_running(self) -> bool:
        return self._task.is_running
