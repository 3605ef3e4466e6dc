"""Command line entry point for proctrend.

Usage:
    proctrend 1234
    proctrend nginx worker --interval 250 --mem-zoom 4
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from textual.logging import TextualHandler

from proctrend.app import ProcTrendApp
from proctrend.config import build_config, deep_merge, load_config
from proctrend.errors import ProcTrendError
from proctrend.models import MetricKind
from proctrend.probes import NET_KINDS
from proctrend.resolver import resolve

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proctrend",
        description="Monitor a process by PID or its name.",
    )
    parser.add_argument(
        "target",
        metavar="PID_OR_NAME",
        help="PID, or a case-insensitive fragment of the process name",
    )
    parser.add_argument(
        "filters",
        nargs="*",
        metavar="FILTER",
        help="Further name fragments that must all match",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        metavar="MS",
        help="Time in milliseconds between samples (default: 500)",
    )
    for kind, label in (
        (MetricKind.CPU, "CPU"),
        (MetricKind.MEMORY, "memory"),
        (MetricKind.NETWORK, "network"),
        (MetricKind.FILES, "open files"),
    ):
        parser.add_argument(
            f"--{kind.value}-data-size",
            type=int,
            default=None,
            metavar="N",
            help=f"Samples kept for the {label} graph (default: 512)",
        )
        parser.add_argument(
            f"--{kind.value}-zoom",
            type=float,
            default=None,
            metavar="FACTOR",
            help=f"Zoom factor for the {label} graph (default: 1.0)",
        )
    parser.add_argument(
        "--net-kind",
        default=None,
        choices=NET_KINDS,
        help="Kind of connections to count (default: all)",
    )
    parser.add_argument(
        "--exit-after",
        type=int,
        default=None,
        metavar="N",
        help="Stop sampling after the process is gone for N ticks, 0 = never (default: 3)",
    )
    parser.add_argument(
        "--probe-timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Upper bound for external tools used by probes (default: 2.0)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write log records to this file",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Log level (default: WARNING)",
    )
    return parser


def setup_logging(level: str, log_file: Path | None = None) -> None:
    """Route log records to the textual console and optionally a file."""
    handlers: list[logging.Handler] = [TextualHandler()]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=getattr(logging, level), handlers=handlers, force=True)


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Settings given on the command line, in config file shape."""
    overrides: dict[str, Any] = {}
    scalars = {
        "interval_ms": args.interval,
        "net_kind": args.net_kind,
        "exit_after": args.exit_after,
        "probe_timeout": args.probe_timeout,
    }
    overrides.update({key: value for key, value in scalars.items() if value is not None})

    data_size: dict[str, int] = {}
    zoom: dict[str, float] = {}
    for kind in MetricKind:
        size = getattr(args, f"{kind.value}_data_size")
        factor = getattr(args, f"{kind.value}_zoom")
        if size is not None:
            data_size[kind.value] = size
        if factor is not None:
            zoom[kind.value] = factor
    if data_size:
        overrides["data_size"] = data_size
    if zoom:
        overrides["zoom"] = zoom
    return overrides


def main(argv: list[str] | None = None) -> int:
    """Entry point for proctrend."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        settings = deep_merge(load_config(args.config), cli_overrides(args))
        config = build_config(settings)
        handle = resolve(args.target, args.filters)
    except ProcTrendError as e:
        print(f"proctrend: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    app = ProcTrendApp(handle, config)
    try:
        app.run()
    except Exception as e:
        logger.exception("UI backend failed")
        print(f"proctrend: failed to initialize the terminal UI: {e}", file=sys.stderr)
        return 1
    finally:
        app.monitor.stop()
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
