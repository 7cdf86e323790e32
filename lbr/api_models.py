from __future__ import annotations

from pydantic import BaseModel, Field


class NodeStatus(BaseModel):
    address: str
    port: int
    path: str
    weight: int | None = Field(None, description="Last weight sent to IPVS (null = unknown)")
    last_health: int | None = None


class ClusterStatus(BaseModel):
    name: str
    fwmark: str
    scheduler: str
    monitored: bool
    downpage_enabled: bool
    override: str = Field("none", description="none|forced_up|forced_down")
    nodes: list[NodeStatus] = Field(default_factory=list)


class OverrideRequest(BaseModel):
    reason: str = Field("", max_length=500, description="Why the cluster is being forced up/down")
