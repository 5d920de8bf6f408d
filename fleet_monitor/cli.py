"""
Command-line entry point: run one monitoring pass and exit.

Meant to be run from cron, e.g.

    */5 * * * * fleet-monitor --validator 'Alice|http://10.0.0.1:9944' --validator 'Bob|http://10.0.0.2:9944'

Exit status: 0 OK, 1 DEGRADED, 2 FAIL, 3 configuration error.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from fleet_monitor.alerts import AlertSink, WebhookNotifier
from fleet_monitor.config import MonitorConfig, build_validators, load_config
from fleet_monitor.errors import ConfigError
from fleet_monitor.monitor import FleetMonitor

EXIT_CONFIG_ERROR = 3

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file: Optional[str], log_level: str = "WARNING"):
    """Routine log file at INFO, console (stderr) at `log_level`."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_level.upper() == "DEBUG" else logging.INFO)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleet-monitor",
        description="Check validator fleet health and block-height consistency",
    )
    parser.add_argument(
        "--validator",
        action="append",
        metavar="NAME|URL",
        help="Validator to poll (repeatable); replaces FLEET_VALIDATORS",
    )
    parser.add_argument("--min-peers", type=int, help="Minimum peer count (default 2)")
    parser.add_argument("--max-block-lag", type=int, help="Maximum block height spread (default 10)")
    parser.add_argument("--timeout", type=float, dest="rpc_timeout", help="Per-call timeout in seconds (default 10)")
    parser.add_argument("--max-concurrency", type=int, help="Nodes polled at once (default 8)")
    parser.add_argument("--faucet-url", help="Faucet base URL")
    parser.add_argument("--log-file", help="Routine log file")
    parser.add_argument("--alert-file", help="Alert log file")
    parser.add_argument("--webhook-url", dest="alert_webhook_url", help="Post alerts to this webhook")
    parser.add_argument("--log-level", default="WARNING", help="Console log level (default WARNING)")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument("--no-dotenv", action="store_true", help="Do not read a .env file")
    return parser


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    validators = build_validators(args.validator) if args.validator else None
    return load_config(
        dotenv=not args.no_dotenv,
        validators=validators,
        min_peers=args.min_peers,
        max_block_lag=args.max_block_lag,
        rpc_timeout=args.rpc_timeout,
        max_concurrency=args.max_concurrency,
        faucet_url=args.faucet_url,
        log_file=args.log_file,
        alert_file=args.alert_file,
        alert_webhook_url=args.alert_webhook_url,
    )


def build_sink(config: MonitorConfig) -> AlertSink:
    sink = AlertSink(
        config.alert_file,
        max_bytes=config.alert_max_bytes,
        backup_count=config.alert_backup_count,
    )
    if config.alert_webhook_url:
        sink.add_hook(WebhookNotifier(config.alert_webhook_url, label=config.alert_label, timeout=config.rpc_timeout))
    return sink


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_file, args.log_level)
    color = not args.no_color and sys.stdout.isatty()

    with build_sink(config) as sink:
        monitor = FleetMonitor(config, sink, output=print, color=color)
        result = asyncio.run(monitor.run_pass())

    return result.overall_status.exit_code


if __name__ == "__main__":
    sys.exit(main())
