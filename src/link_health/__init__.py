"""Link health monitoring and dead link recovery."""

from link_health.monitor import LinkMonitor
from link_health.probe import LinkProber
from link_health.recovery import RecoveryChain, build_recovery_chain
from link_health.repository import LinkHealthRepository
from link_health.types import (
    LinkCheckResult,
    LinkHealthRecord,
    LinkHealthReport,
    RecoveryResult,
)

__all__ = [
    "LinkCheckResult",
    "LinkHealthRecord",
    "LinkHealthReport",
    "LinkHealthRepository",
    "LinkMonitor",
    "LinkProber",
    "RecoveryChain",
    "RecoveryResult",
    "build_recovery_chain",
]
