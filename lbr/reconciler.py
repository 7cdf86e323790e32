from __future__ import annotations

import time
from threading import Event, Thread

from . import db
from .alerts import downpage_alert
from .cluster import Cluster
from .runtime import ClusterRegistry
from .settings import settings


class Reconciler:
    """Periodically reconciles node health into the IPVS table."""

    def __init__(self, registry: ClusterRegistry, tick_interval_s: float | None = None):
        self.registry = registry
        self.tick_interval_s = tick_interval_s if tick_interval_s is not None else settings.tick_interval_s
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()

    def _loop(self) -> None:
        db.log_event("INFO", "Reconciler started")
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                db.log_event("ERROR", f"Reconciler tick failed: {type(e).__name__}: {e}")
            self._stop.wait(max(0.1, self.tick_interval_s))
        db.log_event("INFO", "Reconciler stopped")

    def tick(self) -> int:
        """Run one health pass over every cluster that is due. Returns how many ran."""
        checked = 0
        for cluster in self.registry.all():
            if not cluster.needs_check():
                continue
            checked += 1
            self._check_cluster(cluster)
        return checked

    def _check_cluster(self, cluster: Cluster) -> None:
        before = cluster.downpage_enabled
        start = time.monotonic()
        try:
            cluster.monitor_nodes()
        except Exception as e:
            # One broken cluster must not stop the others.
            db.log_event("ERROR", f"Monitoring {cluster} failed: {type(e).__name__}: {e}", cluster_name=cluster.name)
            return
        elapsed_ms = round((time.monotonic() - start) * 1000.0, 2)
        if elapsed_ms > cluster.check_interval * 1000.0:
            db.log_event("WARN", f"Health pass for {cluster} took {elapsed_ms} ms", cluster_name=cluster.name)
        if cluster.downpage_enabled != before:
            downpage_alert(cluster.name, cluster.fwmark, cluster.downpage_enabled)

    def synchronize_all(self) -> None:
        """Pick up services a previous process left in IPVS."""
        for cluster in self.registry.all():
            try:
                cluster.synchronize()
            except Exception as e:
                db.log_event("ERROR", f"Synchronizing {cluster} failed: {type(e).__name__}: {e}", cluster_name=cluster.name)

    def reconfigure(self, clusters: dict[str, Cluster]) -> None:
        """Swap in freshly loaded clusters without dropping live IPVS state.

        Clusters are matched by fwmark. A matched cluster takes over the old
        one's monitoring state and re-synchronizes its real servers; clusters
        that vanished from the configuration are stopped.
        """
        previous = {c: c for c in self.registry.all()}
        for cluster in clusters.values():
            old = previous.pop(cluster, None)
            if old is None:
                continue
            with cluster.ipvs.locked(cluster.fwmark):
                cluster.incorporate_state(old)
                if cluster.monitored:
                    try:
                        cluster.synchronize()
                    except Exception as e:
                        db.log_event("ERROR", f"Resynchronizing {cluster} failed: {type(e).__name__}: {e}", cluster_name=cluster.name)

        self.registry.replace(clusters)

        for old in previous.values():
            try:
                old.stop_monitoring()
            except Exception as e:
                db.log_event("ERROR", f"Stopping removed cluster {old} failed: {type(e).__name__}: {e}", cluster_name=old.name)
        db.log_event("INFO", f"Reconfigured with {len(clusters)} cluster(s)")
