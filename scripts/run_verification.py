#!/usr/bin/env python3
"""classverify CLI — verify one or more class logs from JSON request files.

Each file holds one request object (or a list of them) in the inbound wire
shape: classLogId, photoUrls, declaredDate, rateLimitKey, and optionally
photoGps, referenceLocation, exifDateTaken, declaredTime, orphanageName.

Usage:
    python scripts/run_verification.py requests/log-123.json
    python scripts/run_verification.py requests/*.json --store outputs/verdicts
    python scripts/run_verification.py batch.json --vision-backend ollama --log-level DEBUG
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Ensure project root is on sys.path for consistent import resolution
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config.defaults import (  # noqa: E402
    ANTHROPIC_MODEL,
    DEFAULT_LOG_LEVEL,
    OLLAMA_HOST,
    OLLAMA_MODEL,
    VERDICT_STORE_ROOT,
    VISION_BACKEND,
)
from config.settings import RateLimitConfig, VerificationConfig  # noqa: E402
from classverify.errors import PersistenceError, VerificationError  # noqa: E402
from classverify.io.persistence import JsonVerdictRecorder  # noqa: E402
from classverify.models.pipeline import VerificationRequest  # noqa: E402
from classverify.pipeline import verify_class_log  # noqa: E402
from classverify.throttle import RequestThrottle  # noqa: E402
from classverify.utils.logging_utils import configure_logging  # noqa: E402


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the argparse argument parser."""
    parser = argparse.ArgumentParser(
        prog="run_verification",
        description="classverify — verify class-log photos against place and time",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("requests", nargs="+", type=Path, help="JSON request file(s)")
    parser.add_argument(
        "--store",
        type=str,
        default=VERDICT_STORE_ROOT,
        help="Directory the JSON verdict recorder writes to",
    )
    parser.add_argument(
        "--vision-backend",
        type=str,
        default=VISION_BACKEND,
        choices=["anthropic", "ollama"],
        help="Vision backend used for photo analysis",
    )
    parser.add_argument("--anthropic-model", type=str, default=ANTHROPIC_MODEL)
    parser.add_argument("--ollama-model", type=str, default=OLLAMA_MODEL)
    parser.add_argument("--ollama-host", type=str, default=OLLAMA_HOST)
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for all photo analyses of one class log",
    )
    parser.add_argument(
        "--no-rate-limit",
        action="store_true",
        help="Admit every request (batch re-analysis run by an operator)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def load_requests(paths: List[Path]) -> List[Dict[str, Any]]:
    """Read request payloads; a file may hold one object or a list."""
    payloads: List[Dict[str, Any]] = []
    for path in paths:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        payloads.extend(data if isinstance(data, list) else [data])
    return payloads


def args_to_config(args: argparse.Namespace) -> VerificationConfig:
    """Convert parsed CLI arguments into a VerificationConfig."""
    config = VerificationConfig(
        vision_backend=args.vision_backend,
        anthropic_model=args.anthropic_model,
        ollama_model=args.ollama_model,
        ollama_host=args.ollama_host,
        analysis_timeout_seconds=args.timeout,
        verdict_store_root=args.store,
        log_level=args.log_level,
    )
    if args.no_rate_limit:
        config.analysis_rate_limit = RateLimitConfig(max_requests=10**9, window_seconds=1)
    return config


def main() -> None:
    """CLI entrypoint — parse arguments, verify each request, report outcomes."""
    args = build_arg_parser().parse_args()
    configure_logging(log_level=args.log_level)
    logger = logging.getLogger("classverify.scripts.run_verification")

    config = args_to_config(args)
    recorder = JsonVerdictRecorder(config.verdict_store_root)
    throttle = RequestThrottle()

    try:
        payloads = load_requests(args.requests)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Could not read request file(s): %s", exc)
        sys.exit(2)

    failures = 0
    for payload in payloads:
        class_log_id = payload.get("classLogId", "?")
        try:
            request = VerificationRequest.from_dict(payload)
            verdict = verify_class_log(request, config, throttle=throttle, recorder=recorder)
            print(json.dumps(verdict.to_dict(), ensure_ascii=False))
        except PersistenceError as exc:
            failures += 1
            logger.error("%s: verdict computed but not saved: %s", class_log_id, exc)
            print(json.dumps(exc.verdict.to_dict(), ensure_ascii=False))
        except VerificationError as exc:
            failures += 1
            logger.error("%s: %s (%s)", class_log_id, exc.message, exc.kind)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            sys.exit(130)

    logger.info("Verified %d class log(s), %d failure(s)", len(payloads) - failures, failures)
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
