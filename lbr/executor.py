from __future__ import annotations

import shlex
import subprocess
from typing import Protocol

from .db import log_event
from .errors import ExecutionError

SAVE_COMMAND = "ipvsadm --save --numeric"


class CommandExecutor(Protocol):
    def run(self, command: str) -> str: ...

    def running_configuration(self) -> dict[str, list[str]]: ...


def parse_running_configuration(output: str) -> dict[str, list[str]]:
    """Parse `ipvsadm --save --numeric` output.

    Service lines look like ``-A -f 1 -s wrr -p 300`` and real server lines
    like ``-a -f 1 -r 10.0.1.1:0 -i -w 100``. Only fwmark services are
    considered. Returns fwmark -> real server addresses, in table order.
    """
    config: dict[str, list[str]] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 3 or parts[1] != "-f":
            continue
        fwmark = parts[2]
        if parts[0] == "-A":
            config.setdefault(fwmark, [])
        elif parts[0] == "-a" and "-r" in parts:
            idx = parts.index("-r")
            if idx + 1 >= len(parts):
                continue
            address = parts[idx + 1].rsplit(":", 1)[0]
            servers = config.setdefault(fwmark, [])
            if address not in servers:
                servers.append(address)
    return config


class ShellExecutor:
    """Runs ipvsadm on the local host."""

    def __init__(self, timeout_s: float = 10.0, dry_run: bool = False):
        self.timeout_s = timeout_s
        self.dry_run = dry_run

    def run(self, command: str) -> str:
        if self.dry_run:
            log_event("INFO", f"[dry-run] {command}")
            return ""
        try:
            proc = subprocess.run(
                shlex.split(command),
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as e:
            raise ExecutionError(command, output=str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(command, output=f"timed out after {self.timeout_s}s") from e
        if proc.returncode != 0:
            raise ExecutionError(command, proc.returncode, proc.stderr or proc.stdout)
        return proc.stdout

    def running_configuration(self) -> dict[str, list[str]]:
        if self.dry_run:
            return {}
        return parse_running_configuration(self.run(SAVE_COMMAND))
