from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol

import httpx

from .errors import HealthCheckError

if TYPE_CHECKING:
    from .node import Node

HEALTH_LINE_RE = re.compile(r"^Health:\s*(\d+)", re.MULTILINE)


class HealthSource(Protocol):
    def current_health(self, node: Node) -> int: ...


def parse_health(status_code: int, headers: httpx.Headers, body: str) -> int:
    """Turn a health endpoint response into a score.

    Non-200 responses score 0. The `X-Health` header wins over a
    `Health: <n>` line in the body; anything unparseable scores 0.
    """
    if status_code != 200:
        return 0
    raw = headers.get("x-health")
    if raw is not None:
        try:
            return max(0, int(raw.strip()))
        except ValueError:
            return 0
    match = HEALTH_LINE_RE.search(body)
    if match:
        return int(match.group(1))
    return 0


class HealthFetcher:
    """Fetch a node's health score over HTTP."""

    def __init__(self, timeout_s: float = 2.0, transport: httpx.BaseTransport | None = None):
        self.timeout_s = timeout_s
        self.transport = transport

    def url_for(self, node: Node) -> str:
        return f"http://{node.address}:{int(node.port)}{node.path}"

    def current_health(self, node: Node) -> int:
        url = self.url_for(node)
        try:
            with httpx.Client(timeout=self.timeout_s, follow_redirects=False, transport=self.transport) as client:
                resp = client.get(url)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise HealthCheckError(f"No response from {url}") from e
        except httpx.HTTPError as e:
            raise HealthCheckError(f"Error: {type(e).__name__}: {e}") from e
        return parse_health(resp.status_code, resp.headers, resp.text)
