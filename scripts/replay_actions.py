#!/usr/bin/env python3
"""Replay a JSON-lines action log through the reducer.

Each line is an action object ``{"type": ..., "payload": ..., "at": ...}``.
Lines that are blank, not JSON, or name an unknown action are skipped.
Actions without ``at`` take the time of the previous one, so the output
is the same on every run.
The final state (or a per-action trace) is printed as JSON.

Usage
-----
::

    python scripts/replay_actions.py actions.jsonl
    python scripts/replay_actions.py actions.jsonl --trace --section navigation
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from dashstate import DashstateConfig, StateStore  # noqa: E402

_SECTIONS = ("navigation", "search", "health", "catalog", "builder", "settings", "errors", "loading")


def _dump(state: Any, section: str | None) -> Any:
    data = state.to_json_dict()
    if section is None:
        return data
    return data.get(section)


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay an action log through the reducer.")
    parser.add_argument("log", help="JSON-lines action log ('-' for stdin)")
    parser.add_argument("--section", choices=_SECTIONS, help="Only print this state section")
    parser.add_argument("--trace", action="store_true", help="Print the section after every action")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        lines = sys.stdin.readlines() if args.log == "-" else Path(args.log).read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        print(f"Could not read {args.log}: {exc}", file=sys.stderr)
        return 1

    store = StateStore(config=DashstateConfig.from_env())
    applied = skipped = 0
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            print(f"line {lineno}: not JSON, skipped", file=sys.stderr)
            skipped += 1
            continue
        action = store.parse(raw) if isinstance(raw, dict) else None
        if action is None:
            print(f"line {lineno}: unknown or invalid action, skipped", file=sys.stderr)
            skipped += 1
            continue
        before = store.state
        store.dispatch(action)
        applied += 1
        if args.trace:
            changed = store.state is not before
            print(json.dumps({"line": lineno, "type": action.type, "changed": changed}))
            if changed:
                print(json.dumps(_dump(store.state, args.section), indent=2, default=str))

    if not args.trace:
        print(json.dumps(_dump(store.state, args.section), indent=2, default=str))
    print(f"{applied} applied, {skipped} skipped", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
