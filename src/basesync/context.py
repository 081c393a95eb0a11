"""
Per-run context for schema synchronization.

A ``SyncContext`` is handed to the reconciler explicitly and carries the
logger and the metric counters for one run.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class SyncMetrics:
    """Counters accumulated during a single synchronization run."""

    store_calls: int = 0
    bases_created: int = 0
    tables_created: int = 0
    fields_added: int = 0
    fields_failed: int = 0
    started_at: float = field(default_factory=time.time)

    def increment(self, counter: str, amount: int = 1) -> None:
        """Increment a named counter."""
        if not hasattr(self, counter) or counter == "started_at":
            raise AttributeError(f"Unknown metric counter: {counter}")
        setattr(self, counter, getattr(self, counter) + amount)

    @property
    def elapsed_ms(self) -> float:
        return (time.time() - self.started_at) * 1000

    def snapshot(self) -> Dict[str, float]:
        """Get the current counter values."""
        return {
            "store_calls": self.store_calls,
            "bases_created": self.bases_created,
            "tables_created": self.tables_created,
            "fields_added": self.fields_added,
            "fields_failed": self.fields_failed,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


@dataclass
class SyncContext:
    """Logger and metrics sinks for one reconciliation run."""

    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("basesync.sync")
    )
    metrics: SyncMetrics = field(default_factory=SyncMetrics)
    run_label: Optional[str] = None

    @classmethod
    def create(cls, run_label: Optional[str] = None) -> "SyncContext":
        """Create a fresh context, optionally tagging the logger with a label."""
        name = "basesync.sync"
        if run_label:
            name = f"{name}.{run_label}"
        return cls(logger=logging.getLogger(name), run_label=run_label)
