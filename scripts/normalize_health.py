#!/usr/bin/env python3
"""Normalize a raw health payload and print the canonical snapshot.

Reads a JSON document from a file (or stdin) or fetches it from a URL, runs
it through the health normalizer with the configured thresholds and prints
the resulting snapshot.

Usage
-----
::

    python scripts/normalize_health.py payload.json
    cat payload.json | python scripts/normalize_health.py -
    python scripts/normalize_health.py --url http://localhost:3000/api/health

Options::

    --url URL           Fetch the payload instead of reading a file
    --validate          Also report payload validation problems
    --strict            Require a top-level status field when validating
    --summary           Print a one-line summary instead of JSON
"""

from __future__ import annotations

import argparse
import asyncio
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

from dashstate import DashstateConfig, DashstateTransportError, HealthNormalizer  # noqa: E402
from dashstate._transport import HttpJsonFetcher  # noqa: E402


def _read_payload(source: str) -> Any:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    return json.loads(text)


async def _fetch_payload(url: str, timeout: float) -> Any:
    fetcher = HttpJsonFetcher(url, timeout=timeout)
    try:
        return await fetcher()
    finally:
        await fetcher.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Normalize a raw health payload.")
    parser.add_argument("source", nargs="?", default="-", help="JSON file to read ('-' for stdin)")
    parser.add_argument("--url", help="Fetch the payload from URL instead")
    parser.add_argument("--validate", action="store_true", help="Report payload validation problems")
    parser.add_argument("--strict", action="store_true", help="Require a top-level status field")
    parser.add_argument("--summary", action="store_true", help="Print a one-line summary")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = DashstateConfig.from_env()
    normalizer = HealthNormalizer(
        config.thresholds,
        strict_validation=args.strict or config.strict_health_validation,
    )

    try:
        if args.url:
            raw = asyncio.run(_fetch_payload(args.url, config.health_timeout))
        else:
            raw = _read_payload(args.source)
    except (OSError, json.JSONDecodeError, DashstateTransportError) as exc:
        print(f"Could not load payload: {exc}", file=sys.stderr)
        return 1

    if args.validate:
        validation = normalizer.validate_payload(raw)
        for problem in validation.errors:
            print(f"invalid: {problem}", file=sys.stderr)

    snapshot = normalizer.normalize(raw)
    if args.summary:
        metrics = snapshot.metrics
        print(
            f"{snapshot.overall} "
            f"components={metrics.healthy_components}/{metrics.total_components} "
            f"response_time={metrics.response_time:.0f}ms "
            f"error_rate={metrics.error_rate:.2%}"
        )
    else:
        print(json.dumps(snapshot.to_json_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
