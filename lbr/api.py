from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from . import db
from .api_models import ClusterStatus, NodeStatus, OverrideRequest
from .cluster import Cluster
from .errors import ExecutionError
from .runtime import ClusterRegistry
from .status_file import KINDS, StatusOverride


def cluster_status(cluster: Cluster) -> ClusterStatus:
    return ClusterStatus(
        name=cluster.name,
        fwmark=str(cluster.fwmark),
        scheduler=cluster.scheduler,
        monitored=cluster.monitored,
        downpage_enabled=cluster.downpage_enabled,
        override=cluster.override_status().value,
        nodes=[
            NodeStatus(address=n.address, port=n.port, path=n.path, weight=n.weight, last_health=n.last_health)
            for n in cluster.nodes
        ],
    )


def create_app(registry: ClusterRegistry, status_override: StatusOverride) -> FastAPI:
    app = FastAPI(title="IPVS Reconciler")

    def _cluster(name: str) -> Cluster:
        cluster = registry.get(name)
        if cluster is None:
            raise HTTPException(status_code=404, detail=f"Cluster '{name}' not found.")
        return cluster

    @app.exception_handler(ExecutionError)
    def _execution_error(request: Request, exc: ExecutionError) -> JSONResponse:
        db.log_event("ERROR", str(exc))
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/clusters", response_model=list[ClusterStatus])
    def list_clusters() -> list[ClusterStatus]:
        return [cluster_status(c) for c in sorted(registry.all(), key=lambda c: c.name)]

    @app.get("/clusters/{name}", response_model=ClusterStatus)
    def get_cluster(name: str) -> ClusterStatus:
        return cluster_status(_cluster(name))

    @app.put("/clusters/{name}", response_model=ClusterStatus)
    def monitor_cluster(name: str) -> ClusterStatus:
        cluster = _cluster(name)
        if cluster.monitored:
            raise HTTPException(status_code=409, detail=f"{cluster} is already running.")
        cluster.start_monitoring()
        return cluster_status(cluster)

    @app.delete("/clusters/{name}", response_model=ClusterStatus)
    def unmonitor_cluster(name: str) -> ClusterStatus:
        cluster = _cluster(name)
        if not cluster.monitored:
            raise HTTPException(status_code=409, detail=f"{cluster} is not running.")
        cluster.stop_monitoring()
        return cluster_status(cluster)

    @app.put("/clusters/{name}/override/{kind}", response_model=ClusterStatus)
    def set_override(name: str, kind: str, req: OverrideRequest) -> ClusterStatus:
        cluster = _cluster(name)
        if kind not in KINDS:
            raise HTTPException(status_code=400, detail=f"kind must be one of {', '.join(KINDS)}.")
        status_override.file(kind, cluster.name).create(req.reason)
        db.log_event("WARN", f"Forced {kind}: {req.reason or 'no reason given'}", cluster_name=cluster.name)
        return cluster_status(cluster)

    @app.delete("/clusters/{name}/override/{kind}", response_model=ClusterStatus)
    def clear_override(name: str, kind: str) -> ClusterStatus:
        cluster = _cluster(name)
        if kind not in KINDS:
            raise HTTPException(status_code=400, detail=f"kind must be one of {', '.join(KINDS)}.")
        status_override.file(kind, cluster.name).delete()
        db.log_event("INFO", f"Cleared {kind} override", cluster_name=cluster.name)
        return cluster_status(cluster)

    @app.get("/events")
    def events(limit: int = Query(100, ge=1, le=1000), cluster: str | None = None) -> list[dict]:
        return db.latest_events(limit, cluster_name=cluster)

    return app
