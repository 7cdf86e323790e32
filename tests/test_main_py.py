import importlib.util
import os

import pytest
from fastapi.testclient import TestClient

from lbr.settings import Settings
from lbr.status_file import StatusOverride

CONFIG = """
web:
  fwmark: 1
  scheduler: wrr
  nodes:
  - address: 10.9.0.1
    port: 8080
    path: /health
api:
  fwmark: 2
  scheduler: wlc
  nodes:
  - address: 10.9.1.1
    port: 9000
"""


def _import_main_module(project_root):
    """Import main.py as a module without requiring it to be installed as a package."""
    main_path = os.path.join(project_root, "main.py")
    spec = importlib.util.spec_from_file_location("ipvs_reconciler_main", main_path)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)  # type: ignore[attr-defined]
    return mod


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "clusters.yml"
    path.write_text(CONFIG)
    return path


@pytest.fixture
def daemon(tmp_path, monkeypatch, config_file, stub_executor):
    project_root = os.path.dirname(os.path.dirname(__file__))
    main = _import_main_module(project_root)
    monkeypatch.setattr(main, "settings", Settings(config_path=str(config_file), status_dir=str(tmp_path / "status")))
    monkeypatch.setattr(main, "status_override", StatusOverride(str(tmp_path / "status")))
    monkeypatch.setattr(main.ipvs, "executor", stub_executor)
    started = []
    monkeypatch.setattr(main.reconciler, "start", lambda: started.append(True))
    monkeypatch.setattr(main, "started", started, raising=False)
    return main


def test_startup_loads_synchronizes_and_starts_the_loop(daemon, stub_executor):
    stub_executor.running_config = {"1": ["10.9.0.1", "10.9.0.9"]}

    with TestClient(daemon.app) as client:
        assert daemon.started == [True]
        body = client.get("/clusters").json()
        assert {c["name"]: c["monitored"] for c in body} == {"api": False, "web": True}

    assert stub_executor.commands == ["ipvsadm --delete-server --fwmark-service 1 --real-server 10.9.0.9"]


def test_reload_rejects_an_invalid_config_and_keeps_the_clusters(daemon, config_file, stub_executor):
    stub_executor.running_config = {"1": ["10.9.0.1"]}

    with TestClient(daemon.app) as client:
        before = daemon.registry.get("web")
        config_file.write_text("web:\n  scheduler: wrr\n")

        r = client.post("/reload")

        assert r.status_code == 400
        assert "web" in r.json()["detail"]
        assert daemon.registry.get("web") is before
        assert before.monitored is True
        assert sorted(c.name for c in daemon.registry.all()) == ["api", "web"]
        assert stub_executor.commands == []


def test_reload_rejects_an_unreadable_config(daemon, config_file):
    with TestClient(daemon.app) as client:
        config_file.unlink()

        r = client.post("/reload")

        assert r.status_code == 400
        assert len(daemon.registry.all()) == 2


def test_reload_applies_a_changed_node_list(daemon, config_file, stub_executor):
    stub_executor.running_config = {"1": ["10.9.0.1"]}

    with TestClient(daemon.app) as client:
        config_file.write_text(CONFIG.replace("10.9.0.1", "10.9.0.2"))
        stub_executor.commands.clear()

        r = client.post("/reload")

        assert r.status_code == 200
        assert r.json() == {"clusters": 2}
        assert stub_executor.commands == [
            "ipvsadm --delete-server --fwmark-service 1 --real-server 10.9.0.1",
            "ipvsadm --add-server --fwmark-service 1 --real-server 10.9.0.2 --ipip --weight 100",
        ]
        assert daemon.registry.get("web").find_node("10.9.0.2") is not None
