from __future__ import annotations

from typing import TYPE_CHECKING

from .db import log_event
from .errors import HealthCheckError
from .ipvs import DEFAULT_WEIGHT
from .status_file import OverrideStatus

if TYPE_CHECKING:
    from .cluster import Cluster


class Node:
    """One real server behind a cluster's fwmark service."""

    def __init__(self, address: str, port: int, path: str = "/", weight: int | None = None):
        self.address = address
        self.port = int(port)
        self.path = path
        self.weight = weight
        self.last_health: int | None = None

    def __repr__(self) -> str:
        return f"Node({self.address}:{self.port}{self.path}, weight={self.weight})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.address == other.address and self.port == other.port

    def __hash__(self) -> int:
        return hash((self.address, self.port))

    def invalidate_weight(self) -> None:
        self.weight = None

    def incorporate_state(self, other: Node | None) -> None:
        if other is not None:
            self.weight = other.weight
            self.last_health = other.last_health

    def monitor(self, cluster: Cluster) -> None:
        new_weight = self._determine_weight(cluster)
        if not cluster.monitored:
            return
        if new_weight != self.weight:
            cluster.ipvs.edit_node(cluster.fwmark, self.address, new_weight)
            log_event(
                "INFO",
                f"Weight of {self.address} changed from {self.weight} to {new_weight}",
                cluster_name=cluster.name,
            )
            self.weight = new_weight

    def _determine_weight(self, cluster: Cluster) -> int:
        override = cluster.override_status()
        if override is OverrideStatus.FORCED_UP:
            return DEFAULT_WEIGHT
        if override is OverrideStatus.FORCED_DOWN:
            return 0
        try:
            self.last_health = max(0, int(cluster.health_fetcher.current_health(self)))
        except HealthCheckError as e:
            # Fail safe: an unreachable node gets no traffic this pass.
            log_event("WARN", f"Health check failed for {self.address}: {e}", cluster_name=cluster.name)
            self.last_health = 0
        return self.last_health
