from __future__ import annotations

from threading import Lock

from .cluster import Cluster


class ClusterRegistry:
    """In-memory set of configured clusters, keyed by name."""

    def __init__(self, clusters: dict[str, Cluster] | None = None) -> None:
        self.lock = Lock()
        self.clusters: dict[str, Cluster] = dict(clusters or {})

    def get(self, name: str) -> Cluster | None:
        with self.lock:
            return self.clusters.get(name)

    def all(self) -> list[Cluster]:
        with self.lock:
            return list(self.clusters.values())

    def replace(self, clusters: dict[str, Cluster]) -> dict[str, Cluster]:
        """Swap in a new cluster set and return the previous one."""
        with self.lock:
            previous = self.clusters
            self.clusters = dict(clusters)
            return previous
