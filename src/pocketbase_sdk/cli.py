"""
Command-line entry point: copy one collection between two PocketBase instances.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.exceptions import MigrationConnectionError, MigrationError, PocketBaseError
from pocketbase_sdk.core.schemas import MigrationConfig, MigrationResult
from pocketbase_sdk.pocketbase.client import PocketBaseApiClient
from pocketbase_sdk.utils.logger import setup_logging

logger = logging.getLogger(settings.APP_NAME)

MAX_ERRORS_SHOWN = 3


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pocketbase-migrate",
        description="Migrate all records of a PocketBase collection to another PocketBase instance",
    )
    parser.add_argument("collection", help="Collection name (same on source and destination)")
    parser.add_argument("destination_url", help="Base URL of the destination instance")
    parser.add_argument("destination_token", help="Admin token for the destination instance")
    parser.add_argument(
        "--source-url", default=settings.POCKETBASE_URL,
        help="Base URL of the source instance (default: $POCKETBASE_URL)",
    )
    parser.add_argument(
        "--source-token", default=settings.POCKETBASE_TOKEN,
        help="Admin token for the source instance (default: $POCKETBASE_TOKEN)",
    )
    parser.add_argument("--batch-size", type=int, default=0, help="Records per batch (default: 50)")
    parser.add_argument("--skip-existing", action="store_true", help="Skip records already present in the destination")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def print_report(result: MigrationResult) -> None:
    print(f"Summary: {result.summary}")
    print(
        f"Records: {result.total_records} total, {result.successful_records} successful, "
        f"{result.failed_records} failed, {result.skipped_records} skipped"
    )
    print(f"Processing time: {result.processing_time:.2f}s")
    if result.errors:
        print(f"Errors encountered: {len(result.errors)}")
        for error in result.errors[:MAX_ERRORS_SHOWN]:
            print(f"  - Record {error.record_id} ({error.operation}): {error.error}")
        if len(result.errors) > MAX_ERRORS_SHOWN:
            print(f"  ... and {len(result.errors) - MAX_ERRORS_SHOWN} more errors")


async def run(args: argparse.Namespace) -> int:
    if not args.source_url:
        logger.error("No source URL given (use --source-url or set POCKETBASE_URL)")
        return 1

    config = MigrationConfig(
        destination_url=args.destination_url,
        destination_token=args.destination_token,
        collection_name=args.collection,
        skip_existing=args.skip_existing,
        batch_size=args.batch_size,
    )

    async with PocketBaseApiClient(args.source_url, args.source_token) as source:
        try:
            await source.get_all(args.collection)
        except PocketBaseError as e:
            logger.error(f"Source connection failed: {e}")
            return 1
        logger.info("Source connection successful")

        try:
            result = await source.migrate_collection(config)
        except MigrationConnectionError as e:
            logger.error(f"Migration failed: {e}")
            if e.partial_result is not None:
                print_report(e.partial_result)
            else:
                logger.error("Migration requires admin tokens for both source and destination")
            return 1
        except MigrationError as e:
            logger.error(f"Migration failed: {e}")
            return 1

    print_report(result)
    return 0 if result.failed_records == 0 else 1


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_arguments(argv)
    setup_logging("DEBUG" if args.verbose else None)
    try:
        exit_code = asyncio.run(run(args))
    except ValueError as e:  # pydantic ValidationError for a bad config is a ValueError
        logger.error(f"Invalid arguments: {e}")
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
