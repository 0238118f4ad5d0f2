"""Periodic carrier tracking sync for CellarStream.

Polls the carrier for every active, carrier-tracked order and feeds the
results through the same ingestion path as the webhook.

Usage:
    python src/tracking_sync.py --once              # One sweep, then exit
    python src/tracking_sync.py --interval 300      # Sweep every 5 minutes
"""

import argparse
import os
import time

import structlog

logger = structlog.get_logger(__name__)


def run_once(domain, timeout=None) -> dict:
    from ordering.order.tracking import sync_active_orders

    with domain.domain_context():
        return sync_active_orders(timeout=timeout)


def main(argv=None):
    from ordering.domain import ordering
    from ordering.utils.logging import configure_logging

    parser = argparse.ArgumentParser(description="CellarStream carrier tracking sync")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=int(os.environ.get("TRACKING_SYNC_INTERVAL", "900")),
        help="Seconds between sweeps (default: TRACKING_SYNC_INTERVAL or 900)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-call carrier timeout in seconds")
    args = parser.parse_args(argv)

    configure_logging()
    ordering.init()

    while True:
        result = run_once(ordering, timeout=args.timeout)
        logger.info("tracking_sweep_finished", **{k: v for k, v in result.items() if k != "errors"})
        if args.once:
            return result
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
