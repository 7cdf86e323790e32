from __future__ import annotations

from contextlib import contextmanager
from threading import Lock, RLock
from typing import Iterator

from .executor import CommandExecutor

PERSISTENCE_TIMEOUT_S = 300
DEFAULT_WEIGHT = 100
DOWNPAGE_WEIGHT = 1
DOWNPAGE_ADDRESS = "127.0.0.1"


def add_service_command(fwmark: str | int, scheduler: str) -> str:
    return (
        f"ipvsadm --add-service --fwmark-service {fwmark} "
        f"--scheduler {scheduler} --persistent {PERSISTENCE_TIMEOUT_S}"
    )


def delete_service_command(fwmark: str | int) -> str:
    return f"ipvsadm --delete-service --fwmark-service {fwmark}"


def edit_server_command(fwmark: str | int, address: str, weight: int) -> str:
    return f"ipvsadm --edit-server --fwmark-service {fwmark} --real-server {address} --ipip --weight {weight}"


def add_server_command(fwmark: str | int, address: str, weight: int) -> str:
    return f"ipvsadm --add-server --fwmark-service {fwmark} --real-server {address} --ipip --weight {weight}"


def delete_server_command(fwmark: str | int, address: str) -> str:
    return f"ipvsadm --delete-server --fwmark-service {fwmark} --real-server {address}"


class IPVS:
    """Facade over a command executor for the IPVS fwmark services we manage.

    Commands for the same fwmark are serialized: callers that need several
    commands to land without interleaving hold `locked(fwmark)` around them.
    """

    def __init__(self, executor: CommandExecutor):
        self.executor = executor
        self._guard = Lock()
        self._locks: dict[str, RLock] = {}

    def _lock_for(self, fwmark: str | int) -> RLock:
        with self._guard:
            return self._locks.setdefault(str(fwmark), RLock())

    @contextmanager
    def locked(self, fwmark: str | int) -> Iterator[None]:
        with self._lock_for(fwmark):
            yield

    def _run(self, fwmark: str | int, command: str) -> str:
        with self.locked(fwmark):
            return self.executor.run(command)

    def start_cluster(self, fwmark: str | int, scheduler: str) -> str:
        return self._run(fwmark, add_service_command(fwmark, scheduler))

    def stop_cluster(self, fwmark: str | int) -> str:
        return self._run(fwmark, delete_service_command(fwmark))

    def edit_node(self, fwmark: str | int, address: str, weight: int) -> str:
        return self._run(fwmark, edit_server_command(fwmark, address, weight))

    def add_node(self, fwmark: str | int, address: str, weight: int = DEFAULT_WEIGHT) -> str:
        return self._run(fwmark, add_server_command(fwmark, address, weight))

    def remove_node(self, fwmark: str | int, address: str) -> str:
        return self._run(fwmark, delete_server_command(fwmark, address))

    def running_configuration(self) -> dict[str, list[str]]:
        return self.executor.running_configuration()
