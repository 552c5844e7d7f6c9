# src/pocketbase_sdk/pocketbase/bulk.py
"""
Bulk record operations.

Every bulk call fans out into one remote call per item (two for an upsert whose
update fails), run concurrently behind a semaphore created for that call.
Per-item failures are collected into the returned BulkResult and never raised.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.exceptions import InvalidResponseError, PocketBaseError
from pocketbase_sdk.core.schemas import BulkOperationError, BulkResult, UpsertItem
from pocketbase_sdk.utils.data_handler import strip_metadata

if TYPE_CHECKING:
    from pocketbase_sdk.pocketbase.client import PocketBaseApiClient

logger = logging.getLogger(settings.APP_NAME)

# A unit of work: performs the remote call(s) for one item and returns the record ID.
Job = Callable[[], Awaitable[Optional[str]]]


class ItemOutcome(NamedTuple):
    index: int
    record_id: Optional[str]
    error: Optional[BaseException]


class BulkItemError(PocketBaseError):
    """Failure of a single bulk item that is not a plain API error."""


# --- Bounded concurrent executor ---

async def run_bounded(
    jobs: Sequence[Tuple[int, Job]],
    max_concurrency: Optional[int] = None,
) -> List[ItemOutcome]:
    """
    Runs every (index, job) pair as its own task with at most `max_concurrency`
    jobs in flight, and returns one outcome per job in completion order.

    An exception raised by a job becomes that job's outcome; the others keep
    running. Returns only once every task has finished.
    """
    if not jobs:
        return []

    limit = max_concurrency or settings.BULK_MAX_CONCURRENCY
    semaphore = asyncio.Semaphore(limit)
    completed: List[ItemOutcome] = []

    async def run_one(index: int, job: Job) -> None:
        async with semaphore:
            try:
                record_id = await job()
                outcome = ItemOutcome(index, record_id, None)
            except Exception as e:
                outcome = ItemOutcome(index, None, e)
        completed.append(outcome)

    tasks = [asyncio.create_task(run_one(index, job)) for index, job in jobs]
    await asyncio.gather(*tasks)
    return completed


# --- Aggregation ---

def _build_result(
    outcomes: List[ItemOutcome],
    known_ids: Sequence[Optional[str]],
    local_errors: Optional[List[BulkOperationError]] = None,
) -> BulkResult:
    success_ids: List[str] = []
    errors: List[BulkOperationError] = list(local_errors or [])
    for outcome in outcomes:
        if outcome.error is None:
            success_ids.append(outcome.record_id or "")
        else:
            errors.append(BulkOperationError(
                index=outcome.index,
                id=known_ids[outcome.index],
                error=str(outcome.error),
            ))
    errors.sort(key=lambda e: e.index)
    return BulkResult(success_ids=tuple(success_ids), errors=tuple(errors))


def _extract_id(record: Any) -> str:
    if isinstance(record, dict) and record.get("id"):
        return str(record["id"])
    raise InvalidResponseError("response does not contain a record id")


def _log_result(operation: str, collection: str, result: BulkResult) -> None:
    logger.info(
        f"Bulk {operation} on {collection}: {result.success_count}/{result.total_count} succeeded, "
        f"{result.failure_count} failed"
    )
    for error in result.errors:
        logger.warning(f"Bulk {operation} on {collection} failed for item {error.index} (id={error.id}): {error.error}")


# --- Bulk operations ---

async def create_many(
    client: "PocketBaseApiClient", collection: str, records: Sequence[Dict[str, Any]]
) -> BulkResult:
    """Creates every record; success_ids holds the IDs assigned by PocketBase."""
    if not records:
        return BulkResult()

    def make_job(record: Dict[str, Any]) -> Job:
        async def job() -> str:
            created = await client.create_record(collection, strip_metadata(record))
            return _extract_id(created)
        return job

    outcomes = await run_bounded([(i, make_job(record)) for i, record in enumerate(records)])
    result = _build_result(outcomes, [None] * len(records))
    _log_result("create", collection, result)
    return result


async def update_many(
    client: "PocketBaseApiClient", collection: str, updates: Sequence[Dict[str, Any]]
) -> BulkResult:
    """
    Updates records by the "id" field each update carries. The id is not sent in
    the body. Items without an id fail locally; no request is made for them.
    """
    if not updates:
        return BulkResult()

    known_ids: List[Optional[str]] = []
    local_errors: List[BulkOperationError] = []
    jobs: List[Tuple[int, Job]] = []

    def make_job(record_id: str, data: Dict[str, Any]) -> Job:
        async def job() -> str:
            await client.update_record(collection, record_id, data)
            return record_id
        return job

    for index, update in enumerate(updates):
        if not isinstance(update, dict):
            known_ids.append(None)
            local_errors.append(BulkOperationError(
                index=index, id=None,
                error=f"update: item at index {index} is {type(update).__name__}, expected a mapping",
            ))
            continue
        record_id = update.get("id")
        known_ids.append(str(record_id) if record_id else None)
        if not record_id:
            local_errors.append(BulkOperationError(
                index=index, id=None, error=f"update: item at index {index} has no 'id' field",
            ))
            continue
        jobs.append((index, make_job(str(record_id), strip_metadata(update))))

    outcomes = await run_bounded(jobs)
    result = _build_result(outcomes, known_ids, local_errors)
    _log_result("update", collection, result)
    return result


async def delete_many(client: "PocketBaseApiClient", collection: str, ids: Sequence[str]) -> BulkResult:
    if not ids:
        return BulkResult()

    def make_job(record_id: str) -> Job:
        async def job() -> str:
            await client.delete_record(collection, record_id)
            return record_id
        return job

    outcomes = await run_bounded([(i, make_job(record_id)) for i, record_id in enumerate(ids)])
    result = _build_result(outcomes, list(ids))
    _log_result("delete", collection, result)
    return result


async def _upsert_one(client: "PocketBaseApiClient", collection: str, item: UpsertItem) -> str:
    """
    Update when an ID is known; on any update failure, or without an ID, create.
    Both steps run inside the same job, so the create only ever follows a failed update.
    """
    data = strip_metadata(item.data)
    if not item.id:
        return _extract_id(await client.create_record(collection, data))

    try:
        await client.update_record(collection, item.id, data)
        return item.id
    except Exception as update_error:
        logger.debug(f"Upsert on {collection}: update of {item.id} failed ({update_error}), creating instead")
        try:
            created = await client.create_record(collection, data)
        except Exception as create_error:
            raise BulkItemError(
                f"update failed: {update_error}; create failed: {create_error}"
            ) from create_error
        return _extract_id(created)


async def upsert_many(
    client: "PocketBaseApiClient", collection: str, items: Sequence[UpsertItem]
) -> BulkResult:
    if not items:
        return BulkResult()

    def make_job(item: UpsertItem) -> Job:
        async def job() -> str:
            return await _upsert_one(client, collection, item)
        return job

    outcomes = await run_bounded([(i, make_job(item)) for i, item in enumerate(items)])
    result = _build_result(outcomes, [item.id for item in items])
    _log_result("upsert", collection, result)
    return result
