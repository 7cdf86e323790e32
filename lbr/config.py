from __future__ import annotations

from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .cluster import Cluster
from .errors import ConfigurationError
from .health import HealthSource
from .ipvs import IPVS
from .node import Node
from .settings import settings
from .status_file import StatusOverride


class NodeConfig(BaseModel):
    address: str = Field(..., min_length=1, description="IP or hostname of the real server")
    port: int = Field(..., ge=1, le=65535, description="Port the health endpoint listens on")
    path: str = Field("/", description="Health endpoint path")

    @field_validator("path")
    @classmethod
    def _path_is_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


class ClusterConfig(BaseModel):
    fwmark: int | str
    scheduler: str = Field(..., min_length=1, description="IPVS scheduler, e.g. wrr")
    check_interval: float | None = Field(None, gt=0)
    has_downpage: bool = True
    nodes: list[NodeConfig] = Field(default_factory=list)

    @field_validator("fwmark")
    @classmethod
    def _fwmark_is_numeric(cls, v: int | str) -> int | str:
        if not str(v).isdigit():
            raise ValueError("fwmark must be a non-negative integer")
        return v


def parse_config(raw: Any) -> dict[str, ClusterConfig]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError("Cluster configuration must be a mapping of cluster name -> settings.")

    out: dict[str, ClusterConfig] = {}
    fwmarks: dict[str, str] = {}
    for name, attrs in raw.items():
        try:
            cfg = ClusterConfig.model_validate(attrs or {})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for cluster '{name}': {e}") from e
        key = str(cfg.fwmark)
        if key in fwmarks:
            raise ConfigurationError(f"Clusters '{fwmarks[key]}' and '{name}' share fwmark {key}.")
        fwmarks[key] = str(name)
        out[str(name)] = cfg
    return out


def build_clusters(
    configs: dict[str, ClusterConfig],
    ipvs: IPVS,
    health_fetcher: HealthSource,
    status_override: StatusOverride,
) -> dict[str, Cluster]:
    clusters: dict[str, Cluster] = {}
    for name, cfg in configs.items():
        nodes = [Node(n.address, n.port, n.path) for n in cfg.nodes]
        clusters[name] = Cluster(
            name,
            cfg.fwmark,
            cfg.scheduler,
            nodes,
            check_interval=cfg.check_interval or settings.check_interval_s,
            has_downpage=cfg.has_downpage,
            ipvs=ipvs,
            health_fetcher=health_fetcher,
            status_override=status_override,
        )
    return clusters


def load_clusters(
    path: str,
    ipvs: IPVS,
    health_fetcher: HealthSource,
    status_override: StatusOverride,
) -> dict[str, Cluster]:
    """Load cluster definitions from a YAML file.

    Example:

        test1:
          fwmark: 1
          scheduler: wrr
          check_interval: 1
          nodes:
          - address: 10.0.0.1
            port: 9001
            path: /health
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read cluster configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse cluster configuration {path}: {e}") from e
    return build_clusters(parse_config(raw), ipvs, health_fetcher, status_override)
