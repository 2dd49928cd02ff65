from .queue import RelayQueue
from .runtime import RelayRuntime
from .sweep import DiscoverySweep, RelayEnqueuer, SweepResult
from .worker import JobOutcome, RelayWorkerPool, relay_reason

__all__ = [
    "DiscoverySweep",
    "JobOutcome",
    "RelayEnqueuer",
    "RelayQueue",
    "RelayRuntime",
    "RelayWorkerPool",
    "SweepResult",
    "relay_reason",
]
