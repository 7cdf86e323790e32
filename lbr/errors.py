from __future__ import annotations


class ExecutionError(Exception):
    """A load balancer command failed (non-zero exit, missing binary, timeout)."""

    def __init__(self, command: str, status: int | None = None, output: str = ""):
        self.command = command
        self.status = status
        self.output = output
        detail = f"exit status {status}" if status is not None else "not executed"
        msg = f"Command failed ({detail}): {command}"
        if output:
            msg = f"{msg}: {output.strip()}"
        super().__init__(msg)


class HealthCheckError(Exception):
    pass


class ConfigurationError(Exception):
    pass
