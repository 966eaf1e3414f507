"""Command-line entry point for the compute daemon (``chimerad``)."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

import yaml

from . import config as configuration
from .daemon import Daemon
from .transport.base import TransportError

logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chimerad",
        description="Serve structured model, accelerator and quantum instructions over TCP.",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file (default: $CHIMERA_CONFIG)")
    parser.add_argument("--host", type=str, default=None, help="address to listen on")
    parser.add_argument("--port", type=int, default=None, help="port to listen on, 0 for automatic assignment")
    parser.add_argument(
        "--modules", type=str, default=None, help="comma-separated list of modules to allow, e.g. ModelModule,QuantumModule"
    )
    parser.add_argument("--workers", type=int, default=None, help="number of worker threads")
    parser.add_argument(
        "--idle-timeout", type=float, default=None, help="seconds before an idle connection is closed"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="logging verbosity",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    try:
        config = configuration.load(
            args.config,
            host=args.host,
            port=args.port,
            modules=args.modules,
            workers=args.workers,
            idle_timeout=args.idle_timeout,
            log_level=args.log_level,
        )
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"chimerad: invalid configuration: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    try:
        daemon = Daemon(config)
        daemon.start()
    except TransportError as exc:
        logger.error("unable to start: %s", exc.reason)
        return 1

    def _stop(signum, _frame):
        logger.info("received %s, shutting down", signal.Signals(signum).name)
        daemon.close()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    daemon.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
