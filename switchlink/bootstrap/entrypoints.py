"""
bootstrap/entrypoints.py - Application entry points

Provides the `switchlink` command: status, set, and api.
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import asyncio
import json
import logging
import sys

logger = logging.getLogger("bootstrap.entrypoints")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _parse_state(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("on", "true", "1"):
        return True
    if lowered in ("off", "false", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SwitchLink dependent switch engine",
        prog="switchlink",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show cached and persisted switch states")

    set_parser = sub.add_parser("set", help="Request a switch state and run its cascade")
    set_parser.add_argument("name", help="Switch name")
    set_parser.add_argument("state", type=_parse_state, help="on or off")

    api_parser = sub.add_parser("api", help="Serve the REST API")
    api_parser.add_argument("-p", "--port", type=int, default=None, help="API port")
    api_parser.add_argument("-H", "--host", default=None, help="API host")

    return parser


def _print_status(rows, as_json: bool) -> None:
    if as_json:
        print(json.dumps(rows, indent=2))
        return
    for row in rows:
        persisted = "-" if row["persisted"] is None else ("on" if row["persisted"] else "off")
        print(f"{row['name']:<24} {'on' if row['state'] else 'off':<4} (persisted: {persisted})")


async def _run_status(app, as_json: bool) -> int:
    await app.start()
    try:
        _print_status(await app.status(), as_json)
    finally:
        await app.stop()
    return 0


async def _run_set(app, name: str, state: bool, as_json: bool) -> int:
    await app.start()
    try:
        result = await app.request(name, state)
        if as_json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(f"{name}: {result.outcome.value}")
            if result.cascade and result.cascade.updated:
                print(f"cascade updated: {', '.join(result.cascade.updated)}")
            _print_status(await app.status(), as_json=False)
        # Let a scheduled bounce fire before exiting
        await app.context.scheduler.drain()
    finally:
        await app.stop()
    return 0 if result.success else 1


def cli_main(args: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parsed = build_parser().parse_args(args)

    from switchlink.errors import SwitchLinkError
    from .app import SwitchLinkApp
    from .config import load_config

    try:
        config = load_config(parsed.config)
        log_level = "DEBUG" if parsed.verbose else (parsed.log_level or config.logging.level)
        setup_logging(
            level=log_level,
            log_file=parsed.log_file or config.logging.log_file,
            json_format=config.logging.json_logs,
        )

        app = SwitchLinkApp(config=config)

        if parsed.command == "status":
            return asyncio.run(_run_status(app, parsed.json))

        if parsed.command == "set":
            return asyncio.run(_run_set(app, parsed.name, parsed.state, parsed.json))

        if parsed.command == "api":
            if parsed.port:
                config.api.port = parsed.port
            if parsed.host:
                config.api.host = parsed.host
            app.run_api()
            return 0

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except SwitchLinkError as e:
        logger.error(str(e))
        return 2

    return 1


def main() -> None:
    sys.exit(cli_main())
