from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Game Server Rotator CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("servers", help="Show per-server rotation status and scenario history")
    sub.add_parser("containers", help="Show the latest hang-detector sample per container")

    for name, help_text in (
        ("events", "Show events"),
        ("rotations", "Show recent scenario rotations"),
        ("restarts", "Show recent hang restarts"),
    ):
        s = sub.add_parser(name, help=help_text)
        s.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")
    params = {"limit": args.limit} if hasattr(args, "limit") else None

    r = requests.get(f"{base}/{args.cmd}", params=params, timeout=10)
    _print(r.json())
    return 0 if r.ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
