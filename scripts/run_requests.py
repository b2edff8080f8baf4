#!/usr/bin/env python3
"""
Dispatch the requests listed in a YAML/JSON file and log every notification.

Usage:
    python scripts/run_requests.py examples/requests.yaml
    python scripts/run_requests.py examples/requests.yaml --concurrency 4 --cancel-after 2
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
import time

from dotenv import load_dotenv

from httpfanout import Dispatcher, load_dispatch_config, load_request_file
from httpfanout.utils import setup_logging

logger = logging.getLogger("httpfanout.run_requests")

EXIT_CANCELLED = 130


def _format_record(record) -> str:
    data = {
        "correlation_id": record.correlation_id,
        "method": record.method,
        "url": record.url,
        "success": record.success,
        "status_code": record.status_code,
        "duration_ms": round(record.duration_ms, 1),
        "error": record.error,
    }
    if isinstance(record.body, (dict, list, str)):
        data["body"] = record.body
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


async def _run(args: argparse.Namespace) -> int:
    config = load_dispatch_config(args.config)
    setup_logging(args.log_level or config.log_level)

    requests = load_request_file(args.requests)
    concurrency = args.concurrency or config.effective_concurrency

    dispatcher = Dispatcher(config=config)
    start = time.time()

    dispatcher.on("result", lambda record: logger.info("Request completed:\n%s", _format_record(record)))
    dispatcher.on("progress", lambda completed, total: logger.info("Progress: %d/%d", completed, total))
    dispatcher.on(
        "finished",
        lambda completed, total: logger.info(
            "All requests completed. Total: %d/%d in %.0f ms", completed, total, (time.time() - start) * 1000
        ),
    )
    dispatcher.on("cancelled", lambda completed: logger.info("Requests cancelled after %d completed", completed))

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, dispatcher.cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler unavailable on this platform")

    if args.cancel_after is not None:
        loop.call_later(args.cancel_after, dispatcher.cancel)

    summary = await dispatcher.run(requests, concurrency)
    return EXIT_CANCELLED if summary.cancelled else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Dispatch HTTP requests from a YAML/JSON file.")
    parser.add_argument("requests", help="Path to the request list (YAML or JSON)")
    parser.add_argument("--config", help="Path to dispatcher config YAML")
    parser.add_argument("--concurrency", type=int, help="Worker units running at once")
    parser.add_argument("--cancel-after", type=float, help="Cancel the dispatch after N seconds")
    parser.add_argument("--log-level", help="Logging level (default from config)")
    args = parser.parse_args()

    load_dotenv()

    try:
        code = asyncio.run(_run(args))
    except (OSError, ValueError) as e:
        logging.basicConfig()
        logger.error("Setup failed: %s", e)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
