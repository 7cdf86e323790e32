from __future__ import annotations

import time
from typing import Callable, Iterable

from .db import log_event
from .health import HealthSource
from .ipvs import DEFAULT_WEIGHT, DOWNPAGE_ADDRESS, DOWNPAGE_WEIGHT, IPVS, PERSISTENCE_TIMEOUT_S
from .node import Node
from .status_file import OverrideStatus, StatusOverride


class Cluster:
    """One IPVS fwmark service and the nodes behind it.

    State machine: unmonitored <-> monitored. Mutating transitions issue their
    ipvsadm command first and only update in-memory state once it succeeded,
    so a failed command leaves the cluster matching what IPVS actually holds.
    """

    persistence_timeout = PERSISTENCE_TIMEOUT_S

    def __init__(
        self,
        name: str,
        fwmark: str | int,
        scheduler: str,
        nodes: Iterable[Node],
        *,
        check_interval: float,
        ipvs: IPVS,
        health_fetcher: HealthSource,
        status_override: StatusOverride,
        has_downpage: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.fwmark = fwmark
        self.scheduler = scheduler
        self.check_interval = float(check_interval)
        self.has_downpage = has_downpage
        self.ipvs = ipvs
        self.health_fetcher = health_fetcher
        self.status_override = status_override
        self._clock = clock

        self._nodes: dict[str, Node] = {}
        for node in nodes:
            self._nodes.setdefault(node.address, node)

        self.monitored = False
        self.downpage_enabled = False
        self.last_check_at: float | None = None
        self._needs_check = False

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def find_node(self, address: str) -> Node | None:
        return self._nodes.get(address)

    def __str__(self) -> str:
        return f"{self.name} ({self.fwmark})"

    def __repr__(self) -> str:
        return f"Cluster({self.name!r}, fwmark={self.fwmark!r}, monitored={self.monitored})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return str(self.fwmark) == str(other.fwmark)

    def __hash__(self) -> int:
        return hash(str(self.fwmark))

    # -- monitoring state machine --------------------------------------------

    def start_monitoring(self) -> None:
        with self.ipvs.locked(self.fwmark):
            if self.monitored:
                return
            self.ipvs.start_cluster(self.fwmark, self.scheduler)
            self.monitored = True
            self._needs_check = True
            self._invalidate_weights()
        log_event("INFO", f"Started monitoring {self}", cluster_name=self.name)

    monitor = start_monitoring

    def stop_monitoring(self) -> None:
        with self.ipvs.locked(self.fwmark):
            if not self.monitored:
                return
            self.ipvs.stop_cluster(self.fwmark)
            self._invalidate_weights()
            self.downpage_enabled = False
            self.monitored = False
        log_event("INFO", f"Stopped monitoring {self}", cluster_name=self.name)

    unmonitor = stop_monitoring

    def resume_monitoring(self) -> None:
        self.monitored = True
        log_event("INFO", f"Resumed monitoring {self}", cluster_name=self.name)

    def needs_check(self) -> bool:
        if not self.monitored:
            return False
        if self._needs_check or self.last_check_at is None:
            return True
        return self._clock() - self.last_check_at > self.check_interval

    def _invalidate_weights(self) -> None:
        for node in self._nodes.values():
            node.invalidate_weight()

    # -- health reconciliation -----------------------------------------------

    def monitor_nodes(self) -> None:
        with self.ipvs.locked(self.fwmark):
            self._needs_check = False
            self.last_check_at = self._clock()
            for node in self.nodes:
                node.monitor(self)
            if self.monitored and self.has_downpage:
                self._check_downpage()

    def all_nodes_down(self) -> bool:
        return all((node.weight or 0) <= 0 for node in self._nodes.values())

    def _check_downpage(self) -> None:
        if self.all_nodes_down():
            if not self.downpage_enabled:
                self.ipvs.add_node(self.fwmark, DOWNPAGE_ADDRESS, DOWNPAGE_WEIGHT)
                self.downpage_enabled = True
                log_event("WARN", f"All nodes down, enabled downpage for {self}", cluster_name=self.name)
        elif self.downpage_enabled:
            self.ipvs.remove_node(self.fwmark, DOWNPAGE_ADDRESS)
            self.downpage_enabled = False
            log_event("INFO", f"Nodes recovered, disabled downpage for {self}", cluster_name=self.name)

    # -- startup / crash recovery --------------------------------------------

    def synchronize(self) -> None:
        """Join a service that is already in IPVS and fix up its real servers."""
        with self.ipvs.locked(self.fwmark):
            running = self.ipvs.running_configuration()
            key = str(self.fwmark)
            if key not in running:
                return

            self.resume_monitoring()

            running_addresses = set(running[key])
            desired_addresses = set(self._nodes)

            # A downpage carried over from a previous cluster object stays live.
            keep_downpage = self.downpage_enabled and DOWNPAGE_ADDRESS in running_addresses
            for address in running[key]:
                if address in desired_addresses:
                    continue
                if address == DOWNPAGE_ADDRESS and keep_downpage:
                    continue
                self.ipvs.remove_node(self.fwmark, address)
                log_event("INFO", f"Removed stale node {address} from {self}", cluster_name=self.name)
            if DOWNPAGE_ADDRESS not in desired_addresses:
                self.downpage_enabled = keep_downpage

            for address in self._nodes:
                if address not in running_addresses:
                    self.ipvs.add_node(self.fwmark, address, DEFAULT_WEIGHT)
                    log_event("INFO", f"Added node {address} to {self}", cluster_name=self.name)

    def incorporate_state(self, other: Cluster) -> Cluster:
        """Carry runtime state over from the cluster this one replaces."""
        for node in self._nodes.values():
            node.incorporate_state(other.find_node(node.address))
        self.monitored = other.monitored
        self.downpage_enabled = other.downpage_enabled
        self.last_check_at = other.last_check_at
        return self

    # -- operator overrides --------------------------------------------------

    def up_file_exists(self) -> bool:
        return self.status_override.exists("up", self.name)

    def down_file_exists(self) -> bool:
        return self.status_override.exists("down", self.name)

    def override_status(self) -> OverrideStatus:
        return self.status_override.override_status(self.name)
