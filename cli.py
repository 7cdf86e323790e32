from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _show(r: requests.Response) -> int:
    try:
        _print(r.json())
    except ValueError:
        print(r.text)
    return 0 if r.ok else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="IPVS Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("clusters", help="List clusters")

    s_status = sub.add_parser("status", help="Show one cluster")
    s_status.add_argument("name")

    s_mon = sub.add_parser("monitor", help="Start monitoring a cluster (adds the IPVS service)")
    s_mon.add_argument("name")

    s_unmon = sub.add_parser("unmonitor", help="Stop monitoring a cluster (deletes the IPVS service)")
    s_unmon.add_argument("name")

    for kind in ("up", "down"):
        s_force = sub.add_parser(kind, help=f"Force a cluster {kind} regardless of health")
        s_force.add_argument("name")
        s_force.add_argument("--reason", default="")

    s_clear = sub.add_parser("clear", help="Remove an up/down override")
    s_clear.add_argument("name")
    s_clear.add_argument("kind", choices=["up", "down"])

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--cluster", default=None)

    sub.add_parser("reload", help="Re-read the cluster configuration file")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "clusters":
        return _show(requests.get(f"{base}/clusters", timeout=10))

    if args.cmd == "status":
        return _show(requests.get(f"{base}/clusters/{args.name}", timeout=10))

    if args.cmd == "monitor":
        return _show(requests.put(f"{base}/clusters/{args.name}", timeout=30))

    if args.cmd == "unmonitor":
        return _show(requests.delete(f"{base}/clusters/{args.name}", timeout=30))

    if args.cmd in ("up", "down"):
        r = requests.put(f"{base}/clusters/{args.name}/override/{args.cmd}", json={"reason": args.reason}, timeout=10)
        return _show(r)

    if args.cmd == "clear":
        return _show(requests.delete(f"{base}/clusters/{args.name}/override/{args.kind}", timeout=10))

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.cluster:
            params["cluster"] = args.cluster
        return _show(requests.get(f"{base}/events", params=params, timeout=10))

    if args.cmd == "reload":
        return _show(requests.post(f"{base}/reload", timeout=30))

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
