"""In-memory router metric table with bounded per-router history.

The store is process-local and owned by a single writer (the router monitor
task). HTTP handlers read it from the same event loop, so a read never
observes a half-applied update.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, List, Optional

from app.services.normalizer import (
    Number,
    RouterMetric,
    normalize_router_payload,
    peak_interface_traffic,
)
from app.services.payloads import (
    DeltaUpdate,
    FullSnapshot,
    MonitoringUpdate,
    extract_router_identifiers,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 60


@dataclass(frozen=True)
class HistoryPoint:
    """One sample of a router's headline metrics."""

    timestamp: int
    cpu: Optional[Number]
    memory: Optional[Number]
    active_sessions: Optional[Number]
    peak_interface_traffic: Optional[Number]

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "cpu": self.cpu,
            "memory": self.memory,
            "active_sessions": self.active_sessions,
            "peak_interface_traffic": self.peak_interface_traffic,
        }


class RouterMetricsStore:
    """Router metrics keyed by identifier plus a capped history per router.

    Args:
        history_limit: Points kept per router; the oldest is evicted first.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        if history_limit < 1:
            raise ValueError(f"history_limit must be at least 1, got {history_limit}")
        self.history_limit = history_limit
        self._clock = clock
        self._metrics: Dict[str, RouterMetric] = {}
        self._history: Dict[str, Deque[HistoryPoint]] = {}

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, router_id: str) -> bool:
        return router_id in self._metrics

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # -- reads --------------------------------------------------------------

    def routers(self) -> List[RouterMetric]:
        """All routers ordered by display name."""
        return sorted(self._metrics.values(), key=lambda metric: (metric.name.lower(), metric.id))

    def get(self, router_id: str) -> Optional[RouterMetric]:
        return self._metrics.get(router_id)

    def history(self, router_id: str) -> List[HistoryPoint]:
        """History of one router, oldest first."""
        return list(self._history.get(router_id, ()))

    # -- writes -------------------------------------------------------------

    def clear(self) -> None:
        self._metrics.clear()
        self._history.clear()

    def push_history(self, metric: RouterMetric, timestamp: int) -> None:
        points = self._history.get(metric.id)
        if points is None:
            points = deque(maxlen=self.history_limit)
            self._history[metric.id] = points
        points.append(
            HistoryPoint(
                timestamp=timestamp,
                cpu=metric.cpu,
                memory=metric.memory,
                active_sessions=metric.active,
                peak_interface_traffic=peak_interface_traffic(metric.interfaces),
            )
        )

    def apply(self, update: MonitoringUpdate, timestamp: Optional[int] = None) -> bool:
        """Reconcile a classified update into the table.

        Returns:
            True if the update carried any usable router data.
        """
        if timestamp is None:
            timestamp = self._now_ms()
        if isinstance(update, FullSnapshot):
            return self.apply_full(update.routers, timestamp)
        if isinstance(update, DeltaUpdate):
            return self.apply_delta(update.added, update.updated, update.removed, timestamp)
        raise TypeError(f"Unsupported update type: {type(update).__name__}")

    def apply_full(self, items: Iterable, timestamp: int) -> bool:
        """Replace the table with a full snapshot."""
        metrics = normalize_router_payload(items, timestamp)
        if not metrics:
            return False

        self._metrics = {metric.id: metric for metric in metrics}
        for stale in set(self._history) - set(self._metrics):
            del self._history[stale]
        for metric in metrics:
            self.push_history(metric, timestamp)

        logger.debug("Applied full snapshot with %d routers", len(self._metrics))
        return True

    def apply_delta(
        self,
        added: Iterable,
        updated: Iterable,
        removed: Iterable,
        timestamp: int,
    ) -> bool:
        """Apply an incremental update.

        Added routers overwrite any entry with the same id. Updated routers
        only overwrite the fields they carry. Removed ids leave both the
        table and the history.
        """
        added_metrics = normalize_router_payload(added, timestamp)
        updated_metrics = normalize_router_payload(updated, timestamp)
        removed_ids = extract_router_identifiers(list(removed))
        if not (added_metrics or updated_metrics or removed_ids):
            return False

        for metric in added_metrics:
            self._metrics[metric.id] = metric
        merged = []
        for metric in updated_metrics:
            previous = self._metrics.get(metric.id)
            current = previous.merged_with(metric) if previous is not None else metric
            self._metrics[metric.id] = current
            merged.append(current)
        for router_id in removed_ids:
            self._metrics.pop(router_id, None)
            self._history.pop(router_id, None)

        for metric in added_metrics + merged:
            if metric.id in self._metrics:
                self.push_history(metric, timestamp)

        logger.debug(
            "Applied delta: %d added, %d updated, %d removed",
            len(added_metrics),
            len(updated_metrics),
            len(removed_ids),
        )
        return True
