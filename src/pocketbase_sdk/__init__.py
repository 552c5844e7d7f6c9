"""Async client for the PocketBase records API, with bulk operations and collection migration."""

from pocketbase_sdk.core.exceptions import (
    InvalidResponseError,
    MigrationConfigError,
    MigrationConnectionError,
    MigrationError,
    NoRecordsFoundError,
    PocketBaseAPIError,
    PocketBaseConnectionError,
    PocketBaseError,
    RecordNotFoundError,
)
from pocketbase_sdk.core.schemas import (
    BulkOperationError,
    BulkResult,
    MigrationConfig,
    MigrationRecord,
    MigrationRecordError,
    MigrationResult,
    UpsertItem,
)
from pocketbase_sdk.pocketbase.client import PocketBaseApiClient

__version__ = "1.0.0"

__all__ = [
    "PocketBaseApiClient",
    "UpsertItem",
    "BulkResult",
    "BulkOperationError",
    "MigrationConfig",
    "MigrationRecord",
    "MigrationRecordError",
    "MigrationResult",
    "PocketBaseError",
    "PocketBaseAPIError",
    "RecordNotFoundError",
    "PocketBaseConnectionError",
    "NoRecordsFoundError",
    "InvalidResponseError",
    "MigrationError",
    "MigrationConfigError",
    "MigrationConnectionError",
]
