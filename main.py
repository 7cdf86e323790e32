"""Daemon entry point: `uvicorn main:app` or `python main.py`."""
from __future__ import annotations

import uvicorn
from fastapi import HTTPException

from lbr import db
from lbr.api import create_app
from lbr.config import load_clusters
from lbr.errors import ConfigurationError
from lbr.executor import ShellExecutor
from lbr.health import HealthFetcher
from lbr.ipvs import IPVS
from lbr.reconciler import Reconciler
from lbr.runtime import ClusterRegistry
from lbr.settings import settings
from lbr.status_file import StatusOverride

ipvs = IPVS(ShellExecutor(timeout_s=settings.command_timeout_s, dry_run=settings.dry_run))
health_fetcher = HealthFetcher(timeout_s=settings.health_timeout_s)
status_override = StatusOverride(settings.status_dir)

registry = ClusterRegistry()
reconciler = Reconciler(registry)

app = create_app(registry, status_override)


def load() -> None:
    clusters = load_clusters(settings.config_path, ipvs, health_fetcher, status_override)
    registry.replace(clusters)


def reload() -> None:
    """Re-read the cluster file and apply it to the running daemon."""
    clusters = load_clusters(settings.config_path, ipvs, health_fetcher, status_override)
    reconciler.reconfigure(clusters)


@app.on_event("startup")
def startup() -> None:
    db.init_db()
    load()
    reconciler.synchronize_all()
    reconciler.start()


@app.on_event("shutdown")
def shutdown() -> None:
    reconciler.stop()


@app.post("/reload")
def reload_config() -> dict[str, int]:
    try:
        reload()
    except ConfigurationError as e:
        db.log_event("ERROR", f"Reload rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"clusters": len(registry.all())}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
