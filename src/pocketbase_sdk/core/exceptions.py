"""
Exception hierarchy for the PocketBase SDK.

Fatal errors are raised to the caller. Per-item errors raised inside bulk and
migration operations are caught at that boundary and reported as text in the
aggregated result instead.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from pocketbase_sdk.core.schemas import MigrationResult


class PocketBaseError(Exception):
    """Base exception for every error raised by this package."""


class PocketBaseAPIError(PocketBaseError):
    """The API answered with an HTTP status >= 400."""

    def __init__(self, status_code: int, response_body: str = "", method: str = "", url: str = ""):
        self.status_code = status_code
        self.response_body = response_body
        self.method = method
        self.url = url
        super().__init__(f"HTTP {status_code}: {response_body}")


class RecordNotFoundError(PocketBaseAPIError):
    """The API answered 404 for a record or collection."""


class PocketBaseConnectionError(PocketBaseError):
    """The request never produced an HTTP response (DNS, refused connection, timeout...)."""


class NoRecordsFoundError(PocketBaseError):
    """A filtered query succeeded but matched nothing."""


class InvalidResponseError(PocketBaseError):
    """The response body could not be decoded into the expected shape."""


class MigrationError(PocketBaseError):
    """Base exception for fatal migration failures."""


class MigrationConfigError(MigrationError):
    """The migration configuration is invalid. Raised before any request is made."""


class MigrationConnectionError(MigrationError):
    """The destination could not be reached; the migration was aborted.

    ``partial_result`` holds the counts gathered before the abort, or None when
    the failure happened at the connection check.
    """

    def __init__(self, message: str, partial_result: Optional["MigrationResult"] = None):
        super().__init__(message)
        self.partial_result = partial_result
