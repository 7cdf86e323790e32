import json

import cli


class _Resp:
    def __init__(self, payload, ok=True):
        self._payload = payload
        self.ok = ok
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


def test_monitor_puts_to_the_cluster(monkeypatch, capsys):
    calls = []

    def fake_put(url, **kwargs):
        calls.append((url, kwargs))
        return _Resp({"name": "web", "monitored": True})

    monkeypatch.setattr(cli.requests, "put", fake_put)

    assert cli.main(["--api", "http://lbr:8000/", "monitor", "web"]) == 0
    assert calls[0][0] == "http://lbr:8000/clusters/web"
    assert json.loads(capsys.readouterr().out)["monitored"] is True


def test_down_sends_the_reason(monkeypatch):
    calls = []

    def fake_put(url, **kwargs):
        calls.append((url, kwargs))
        return _Resp({"detail": "nope"}, ok=False)

    monkeypatch.setattr(cli.requests, "put", fake_put)

    assert cli.main(["down", "web", "--reason", "maintenance"]) == 1
    assert calls == [
        ("http://localhost:8000/clusters/web/override/down", {"json": {"reason": "maintenance"}, "timeout": 10})
    ]


def test_events_passes_filters(monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append((url, kwargs))
        return _Resp([])

    monkeypatch.setattr(cli.requests, "get", fake_get)

    assert cli.main(["events", "--limit", "3", "--cluster", "web"]) == 0
    assert calls[0][1]["params"] == {"limit": 3, "cluster": "web"}
