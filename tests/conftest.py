import os
import sys

import pytest

# Ensure project root is importable (so `import examples...`, `import cli` work reliably across environments)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from lbr import db  # noqa: E402
from lbr.cluster import Cluster  # noqa: E402
from lbr.errors import ExecutionError  # noqa: E402
from lbr.ipvs import IPVS  # noqa: E402
from lbr.node import Node  # noqa: E402
from lbr.settings import Settings  # noqa: E402
from lbr.status_file import StatusOverride  # noqa: E402


class StubExecutor:
    """Records every command instead of running it."""

    def __init__(self):
        self.commands = []
        self.running_config = {}
        self.fail_on = set()

    def run(self, command):
        if command in self.fail_on:
            raise ExecutionError(command, 2, "stubbed failure")
        self.commands.append(command)
        return ""

    def running_configuration(self):
        return {k: list(v) for k, v in self.running_config.items()}


class StubHealthFetcher:
    """Returns a fixed score, or a per-address score when one is set."""

    def __init__(self, health=0):
        self.health = health
        self.by_address = {}
        self.calls = []

    def current_health(self, node):
        self.calls.append(node.address)
        value = self.by_address.get(node.address, self.health)
        if isinstance(value, Exception):
            raise value
        return value


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()


@pytest.fixture
def stub_executor():
    return StubExecutor()


@pytest.fixture
def ipvs(stub_executor):
    return IPVS(stub_executor)


@pytest.fixture
def health_fetcher():
    return StubHealthFetcher()


@pytest.fixture
def status_override(tmp_path):
    return StatusOverride(str(tmp_path / "status"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def factory(ipvs, health_fetcher, status_override, clock):
    """Builds clusters and nodes wired to the stub collaborators."""

    class Factory:
        _counter = 0

        def node(self, address=None, port=8080, path="/health"):
            Factory._counter += 1
            return Node(address or f"10.0.0.{Factory._counter}", port, path)

        def cluster(self, name="test", fwmark=100, scheduler="wrr", nodes=None, check_interval=1, **kwargs):
            return Cluster(
                name,
                fwmark,
                scheduler,
                nodes if nodes is not None else [],
                check_interval=check_interval,
                ipvs=ipvs,
                health_fetcher=health_fetcher,
                status_override=status_override,
                clock=clock,
                **kwargs,
            )

    return Factory()
