#!/usr/bin/env python3
"""Command-line entry point for the SmartCart client."""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from dataclasses import asdict, is_dataclass
from datetime import date
from enum import Enum
from pathlib import Path

from smartcart.config import config

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler(config.log_file, encoding="utf-8"),
    ],
)
logger = logging.getLogger("smartcart")


def _to_jsonable(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


def _print(value) -> None:
    print(json.dumps(_to_jsonable(value), indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smartcart", description="SmartCart client")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("dashboard", help="Fetch dashboard data in one batch call")
    sub.add_parser("lists", help="List shopping lists")

    show = sub.add_parser("list", help="Show one shopping list (offline-aware)")
    show.add_argument("list_id", type=int)

    deals = sub.add_parser("deals", help="Show current deals")
    deals.add_argument("--retailer", type=int, default=None)
    deals.add_argument("--category", default=None)

    categorize = sub.add_parser("categorize", help="Categorize product names")
    categorize.add_argument("names", nargs="+")
    categorize.add_argument("--remote", action="store_true", help="Ask the server categorizer")

    unit = sub.add_parser("unit", help="Suggest units and quantities for product names")
    unit.add_argument("names", nargs="+")
    unit.add_argument("--retailer", default=None)

    scan = sub.add_parser("scan", help="Extract a receipt image")
    scan.add_argument("image", type=Path)
    scan.add_argument("--save", action="store_true", help="Save the receipt after extraction")

    sub.add_parser("clear-offline", help="Delete locally cached offline data")
    return parser


async def run_command(args: argparse.Namespace) -> int:
    # Deferred so logging is configured first
    from smartcart.categorization import (
        CategorizationService,
        detect_optimal_unit,
        generate_quantity_suggestions,
        generate_retail_name_suggestions,
    )
    from smartcart.data import BatchClient, SmartCartClient, fetch_dashboard
    from smartcart.offline import OfflineApiClient, OfflineStorage

    if args.command == "clear-offline":
        OfflineStorage().clear()
        return 0

    if args.command == "unit":
        service = CategorizationService()
        results = []
        for name in args.names:
            quick = service.get_quick_category(name)
            results.append(
                {
                    "name": name,
                    "category": quick.category,
                    "unit": detect_optimal_unit(name),
                    "quantities": generate_quantity_suggestions(name, quick.category),
                    "retailNames": generate_retail_name_suggestions(name, args.retailer),
                }
            )
        _print(results)
        return 0

    async with SmartCartClient() as client:
        if args.command == "dashboard":
            _print(await fetch_dashboard(BatchClient(client)))
        elif args.command == "lists":
            _print(await client.get_shopping_lists())
        elif args.command == "list":
            _print(await OfflineApiClient(client).fetch_shopping_list(args.list_id))
        elif args.command == "deals":
            _print(await client.get_deals(retailer_id=args.retailer, category=args.category))
        elif args.command == "categorize":
            service = CategorizationService(api_client=client)
            if args.remote:
                items = [{"productName": name} for name in args.names]
                _print(await service.categorize_products(items))
            else:
                _print([service.get_quick_category(name) for name in args.names])
        elif args.command == "scan":
            content_type = mimetypes.guess_type(args.image.name)[0] or "image/jpeg"
            image = args.image.read_bytes()
            extracted = await client.extract_receipt(image, content_type=content_type)
            if args.save:
                extracted = await client.save_receipt(image, extracted)
            _print(extracted)
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        logger.error("Please check your .env file")
        return 1

    from pydantic import ValidationError

    from smartcart.errors import SmartCartError
    from smartcart.validation import format_validation_error

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except ValidationError as e:
        for line in format_validation_error(e):
            logger.error(f"Invalid input: {line}")
        return 1
    except SmartCartError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
