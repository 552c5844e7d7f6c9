# src/pocketbase_sdk/pocketbase/migration.py
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.exceptions import (
    MigrationConfigError,
    MigrationConnectionError,
    MigrationError,
    PocketBaseConnectionError,
    PocketBaseError,
)
from pocketbase_sdk.core.schemas import (
    MigrationConfig,
    MigrationRecord,
    MigrationRecordError,
    MigrationResult,
)
from pocketbase_sdk.pocketbase import bulk
from pocketbase_sdk.utils.data_handler import chunked, find_matching_record

if TYPE_CHECKING:
    from pocketbase_sdk.pocketbase.client import PocketBaseApiClient

logger = logging.getLogger(settings.APP_NAME)

OPERATION_CREATE = "create"
OPERATION_EXISTENCE_CHECK = "existence_check"


class _MigrationProgress:
    """Counters accumulated across batches; frozen into a MigrationResult at the end."""

    def __init__(self, collection: str, started: float):
        self.collection = collection
        self.started = started
        self.successful = 0
        self.failed = 0
        self.skipped = 0
        self.errors: List[MigrationRecordError] = []

    @property
    def processed(self) -> int:
        return self.successful + self.failed + self.skipped

    def fail(self, index: int, record: MigrationRecord, operation: str, error: str) -> None:
        self.failed += 1
        self.errors.append(MigrationRecordError(
            record_id=record.source_id, index=index, operation=operation, error=error,
        ))

    def to_result(self, total: int, summary: str) -> MigrationResult:
        return MigrationResult(
            total_records=total,
            successful_records=self.successful,
            failed_records=self.failed,
            skipped_records=self.skipped,
            errors=sorted(self.errors, key=lambda e: e.index),
            processing_time=time.perf_counter() - self.started,
            source_collection=self.collection,
            destination_collection=self.collection,
            summary=summary,
        )


def validate_config(config: Union[MigrationConfig, Dict[str, Any]]) -> MigrationConfig:
    """Validates a migration config, raising MigrationConfigError on any problem."""
    raw = config.model_dump() if isinstance(config, MigrationConfig) else config
    try:
        return MigrationConfig.model_validate(raw)
    except ValidationError as e:
        raise MigrationConfigError(f"invalid migration config: {e}") from e


def build_summary(successful: int, failed: int, skipped: int, total: int) -> str:
    summary = f"{successful}/{total} records successfully migrated"
    extras = []
    if skipped:
        extras.append(f"{skipped} skipped")
    if failed:
        extras.append(f"{failed} failed")
    if extras:
        summary = f"{summary} ({', '.join(extras)})"
    return summary


async def extract_records(source: "PocketBaseApiClient", collection: str) -> List[MigrationRecord]:
    """Fetches the whole source collection, keeping only data fields in each record's payload."""
    try:
        items = await source.get_all(collection)
    except PocketBaseError as e:
        raise MigrationError(f"failed to fetch records from source collection '{collection}': {e}") from e
    return [MigrationRecord.from_api(item) for item in items]


async def _process_batch(
    destination: "PocketBaseApiClient",
    config: MigrationConfig,
    batch: List[Tuple[int, MigrationRecord]],
    progress: _MigrationProgress,
) -> None:
    collection = config.collection_name
    to_create = batch

    if config.skip_existing:
        try:
            existing = await destination.get_all(collection)
        except PocketBaseConnectionError:
            raise
        except PocketBaseError as e:
            for index, record in batch:
                progress.fail(index, record, OPERATION_EXISTENCE_CHECK, str(e))
            return

        to_create = []
        for index, record in batch:
            if find_matching_record(record.data, existing) is not None:
                logger.debug(f"Skipping record {record.source_id}: already present in destination")
                progress.skipped += 1
            else:
                to_create.append((index, record))

    if not to_create:
        return

    result = await bulk.create_many(destination, collection, [record.data for _, record in to_create])
    progress.successful += result.success_count
    for error in result.errors:
        index, record = to_create[error.index]
        progress.fail(index, record, OPERATION_CREATE, error.error)


async def migrate_collection(
    source: "PocketBaseApiClient",
    config: Union[MigrationConfig, Dict[str, Any]],
    destination: Optional["PocketBaseApiClient"] = None,
) -> MigrationResult:
    """
    Copies every record of a collection from `source` into the destination
    instance named by `config`, batch by batch.

    Raises MigrationConfigError before any request if the config is invalid,
    MigrationConnectionError if the destination cannot be reached, and
    MigrationError if the source collection cannot be read. Failures of single
    records never raise; they are listed in the returned result.

    When `destination` is None a client is built from the config and closed
    when the migration ends.
    """
    started = time.perf_counter()
    config = validate_config(config)
    collection = config.collection_name

    owns_destination = destination is None
    if destination is None:
        from pocketbase_sdk.pocketbase.client import PocketBaseApiClient
        destination = PocketBaseApiClient(config.destination_url, config.destination_token)

    try:
        logger.info(f"Starting migration of '{collection}' to {config.destination_url}")
        try:
            await destination.get_all(collection)
        except PocketBaseError as e:
            logger.error(f"Destination connection check failed for '{collection}': {e}")
            raise MigrationConnectionError(f"destination connection check failed: {e}") from e

        records = await extract_records(source, collection)
        progress = _MigrationProgress(collection, started)
        total = len(records)

        if total == 0:
            logger.info(f"No records found in source collection '{collection}'")
            return progress.to_result(0, f"No records found in collection '{collection}'")

        batch_size = config.effective_batch_size
        indexed = list(enumerate(records))
        batch_count = (total + batch_size - 1) // batch_size
        for batch_number, batch in enumerate(chunked(indexed, batch_size), start=1):
            logger.info(f"Migrating batch {batch_number}/{batch_count} of '{collection}' ({len(batch)} records)")
            try:
                await _process_batch(destination, config, batch, progress)
            except PocketBaseConnectionError as e:
                partial = progress.to_result(
                    progress.processed,
                    build_summary(progress.successful, progress.failed, progress.skipped, total)
                    + f"; aborted at batch {batch_number}/{batch_count}",
                )
                logger.error(f"Migration of '{collection}' aborted: destination unreachable: {e}")
                raise MigrationConnectionError(f"destination unreachable during migration: {e}", partial) from e

        summary = build_summary(progress.successful, progress.failed, progress.skipped, total)
        result = progress.to_result(total, summary)
        logger.info(f"Migration of '{collection}' finished in {result.processing_time:.2f}s: {summary}")
        return result
    finally:
        if owns_destination:
            await destination.aclose()
