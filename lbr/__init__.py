"""IPVS Reconciler (LBR).

Single-node daemon that keeps the local IPVS table in sync with backend health:
 - health monitoring of every node in a cluster
 - health score -> IPVS weight translation
 - downpage failover when a whole cluster is down
 - crash-safe synchronization against the running IPVS configuration

The implementation is intentionally small so it can be audited and explained.
"""
