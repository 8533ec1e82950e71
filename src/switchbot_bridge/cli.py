"""CLI entry point for the SwitchBot bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .ble.scanner import scan_meters
from .bridge import format_reading, run_bridge
from .config import load_config, validate_config


def setup_logging(debug: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SwitchBot Bridge - forward SwitchBot Meter advertisements to statsd"
    )
    parser.add_argument(
        "--config",
        help="Path to YAML configuration file (defaults are used without one)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--scan",
        action="store_true",
        help="Scan once for nearby meters, print their readings and exit",
    )
    parser.add_argument(
        "--scan-timeout",
        type=float,
        default=10.0,
        help="Scan duration in seconds (default: 10)",
    )
    return parser


async def run_scan(adapter: str, timeout: float) -> int:
    scan = await scan_meters(timeout=timeout, adapter=adapter)
    for address in sorted(scan.readings):
        print(f"{format_reading(scan.readings[address])} rssi={scan.rssi.get(address)}")
    return 0 if scan.readings else 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.debug)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    errors = validate_config(config)
    if errors:
        print("Configuration validation failed:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        sys.exit(1)

    if args.scan:
        sys.exit(asyncio.run(run_scan(config.bluez.adapter, args.scan_timeout)))

    try:
        asyncio.run(run_bridge(config))
    except KeyboardInterrupt:
        print("\nBridge stopped by user")
    except Exception as e:
        print(f"Bridge failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
