#!/usr/bin/env python3
"""Answer one availability question from the command line.

Usage
-----
Set environment variables and run::

    export AVAIL_SESSION_SECRET="something-long-and-random"
    export AVAIL_BSH_USERNAME="buyer@example.com"
    export AVAIL_BSH_PASSWORD="your-password"
    python scripts/check_availability.py bsh houston SHX78CM5N

Options::

    --timeout SECONDS   Give up after SECONDS (default: no deadline)
    --json              Print the full answered request as JSON
    --verbose, -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pyavail import AvailabilityClient, AvailConfig, AvailError


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Look up appliance availability at a showroom's warehouse.",
    )
    parser.add_argument("manufacturer", help="bsh, subzero or miele")
    parser.add_argument("showroom", help='Showroom name, e.g. "houston"')
    parser.add_argument("model", help="Model number (URL-encoded values are accepted)")
    parser.add_argument("--timeout", type=float, help="Overall deadline in seconds")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output the answered request as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = AvailConfig.from_env()
        async with AvailabilityClient(config) as client:
            answered = await client.check_availability(
                args.manufacturer,
                args.showroom,
                args.model,
                timeout=args.timeout,
            )
    except AvailError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json_mode:
        print(answered.model_dump_json(indent=2))
    else:
        print(answered.availability)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
