#!/usr/bin/env python3
"""Check the standing of one or more document numbers against Odoo.

Reads the Odoo connection from the environment:

  ODOO_URL, ODOO_DB, ODOO_USER, ODOO_APIKEY

Examples:

  check_status.py 8-888-1234
  check_status.py 8-888-1234 E-8-5678 --invoices
  check_status.py --diagnose
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from standing.config import StandingConfig
from standing.decision_cache import DecisionCache
from standing.engine import StatusEngine
from standing.odoo_client import OdooClient
from standing.tools.status import (
    check_status_bulk_tool,
    check_status_tool,
    partner_invoices_tool,
    standing_status_tool,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("identities", nargs="*", help="document numbers to check")
    parser.add_argument(
        "--invoices", action="store_true", help="also list each identity's invoices"
    )
    parser.add_argument(
        "--diagnose", action="store_true", help="report configuration and connectivity"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace, config: StandingConfig) -> dict:
    async with OdooClient.from_config(config) as client:
        engine = StatusEngine(
            client,
            DecisionCache(ttl_secs=config.cache_ttl_secs),
            exempt_types=config.exempt_contract_types,
        )
        if args.diagnose:
            return await standing_status_tool(config, client, engine)

        if len(args.identities) == 1:
            result = await check_status_tool(engine, args.identities[0])
        else:
            result = await check_status_bulk_tool(engine, args.identities)

        if args.invoices and result.get("success"):
            result["invoices"] = {
                identity: await partner_invoices_tool(engine, identity)
                for identity in args.identities
            }
        return result


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = StandingConfig.from_env()
    if not config.has_credentials:
        print("Error: ODOO_USER and ODOO_APIKEY must be set.", file=sys.stderr)
        return 2
    if not args.identities and not args.diagnose:
        print("Error: give at least one document number, or --diagnose.", file=sys.stderr)
        return 2

    result = asyncio.run(_run(args, config))
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success", True) else 1


if __name__ == "__main__":
    sys.exit(main())
