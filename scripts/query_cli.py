#!/usr/bin/env python3
"""Send a message to the orchestrator from the command line. Prints the plan summary and the compiled context."""
import argparse
import json
import os
import sys
from typing import Any

import httpx

ORCHESTRATOR_URL = os.environ.get("ORCHESTRATOR_BASE_URL", "http://127.0.0.1:8000")


def _trunc(s: str, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _trace(label: str, body: Any, trace: bool, max_body_len: int = 2000) -> None:
    if not trace:
        return
    print(f"[{label}]", flush=True)
    raw = json.dumps(body, indent=2) if isinstance(body, (dict, list)) else str(body)
    if len(raw) > max_body_len:
        raw = raw[:max_body_len] + "\n… (truncated)"
    print(raw, flush=True)
    print("---", flush=True)


def print_context(data: dict, headers: dict) -> None:
    print("Status:", headers.get("x-orchestration-status", "?"), flush=True)
    print("Plan:", " -> ".join(data.get("plan_summary") or []), flush=True)
    print("Target model:", data.get("target_model_id"), flush=True)
    messages = data.get("context_messages") or []
    if not messages:
        print("(no context messages; the default agent answers directly)", flush=True)
    for m in messages:
        print(f"  [step {m.get('step_index')}] {m.get('agent')}: {_trunc(m.get('content', ''), 150)}", flush=True)


def main():
    parser = argparse.ArgumentParser(description="Prepare orchestration context for a message.")
    parser.add_argument("message", nargs="*", help="Message text")
    parser.add_argument("--agent", default=None, help="Agent hint, e.g. copywriting")
    parser.add_argument("--url", default=ORCHESTRATOR_URL, help="Orchestrator base URL")
    parser.add_argument("--trace", action="store_true", help="Print request and response bodies")
    args = parser.parse_args()
    message = " ".join(args.message).strip()
    if not message:
        print('Usage: python scripts/query_cli.py "Write a tagline for our new coffee brand"', file=sys.stderr)
        sys.exit(1)

    url = f"{args.url.rstrip('/')}/prepare-context"
    body = {"message": message, "agent_hint": args.agent}
    print("Message:", message, flush=True)
    print("---", flush=True)
    _trace("REQUEST BODY", body, args.trace)
    try:
        r = httpx.post(url, json=body, timeout=300)
    except httpx.ConnectError:
        print(f"Cannot reach orchestrator at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    try:
        data = r.json()
    except ValueError:
        data = r.text
    _trace(f"RESPONSE {r.status_code}", data, args.trace)
    if r.status_code != 200:
        detail = data.get("detail") if isinstance(data, dict) else data
        print(f"Error {r.status_code}: {detail}", file=sys.stderr)
        sys.exit(1)
    print("Request ID:", r.headers.get("x-request-id"), flush=True)
    print_context(data, {k.lower(): v for k, v in r.headers.items()})


if __name__ == "__main__":
    main()
