# src/pocketbase_sdk/utils/data_handler.py
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar

from pocketbase_sdk.core.config import settings
from pocketbase_sdk.core.schemas import METADATA_FIELDS

logger = logging.getLogger(settings.APP_NAME)

T = TypeVar("T")

# Values PocketBase (and data imported into it) uses for "no date"
NULL_DATETIME_VALUES = frozenset({"", "null", "n/a"})

# "2025-01-20 10:00:00.000Z" as written by PocketBase, or ISO-8601 with a "T"
_DATETIME_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$"
)


# --- Filters ---

def _format_filter_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_filter(filters: Dict[str, Any]) -> str:
    """
    Builds a PocketBase filter expression of equality clauses joined with &&.
    Example: {"name": "O'Neil", "age": 3} -> "(name='O\\'Neil' && age=3)"
    """
    if not filters:
        return ""
    clauses = [f"{column}={_format_filter_value(value)}" for column, value in filters.items()]
    return f"({' && '.join(clauses)})"


# --- Record shaping ---

def strip_metadata(record: Dict[str, Any]) -> Dict[str, Any]:
    """Returns a copy of record without the backend-managed fields (and expand data)."""
    return {k: v for k, v in record.items() if k not in METADATA_FIELDS and k != "expand"}


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yields contiguous slices of at most `size` items."""
    if size < 1:
        raise ValueError("size must be a positive integer")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def records_match(source_data: Dict[str, Any], dest_record: Dict[str, Any]) -> bool:
    """
    True when dest_record holds exactly the same non-metadata fields as source_data,
    comparing the string form of every value.
    """
    dest_data = strip_metadata(dest_record)
    if set(dest_data) != set(source_data):
        return False
    for key, value in source_data.items():
        if str(value) != str(dest_data[key]):
            return False
    return True


def find_matching_record(
    source_data: Dict[str, Any], dest_records: Iterable[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    for dest_record in dest_records:
        if records_match(source_data, dest_record):
            return dest_record
    return None


# --- Datetimes ---

def parse_pocketbase_datetime(value: Any) -> Optional[datetime]:
    """
    Parses a PocketBase datetime string into an aware datetime.
    Empty strings, "null", "n/a" (any case) and None give None.
    Raises ValueError for anything else that is not a datetime.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Cannot parse datetime from {type(value).__name__}: {value!r}")

    text = value.strip()
    if text.lower() in NULL_DATETIME_VALUES:
        return None
    if not _DATETIME_PATTERN.match(text):
        raise ValueError(f"Unsupported datetime format: {value!r}")

    text = text.replace(" ", "T", 1)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_datetimes(value: Any, fields: Optional[Iterable[str]] = None) -> Any:
    """
    Walks a decoded JSON value (dicts, lists, scalars) and converts datetimes.

    Without `fields`, every string that looks like a datetime is converted and
    everything else is left alone. With `fields`, only values under those keys
    are converted, and null-like values there ("", "null", "n/a") become None.
    """
    field_set = frozenset(fields) if fields is not None else None

    def walk(node: Any, key: Optional[str]) -> Any:
        if isinstance(node, dict):
            return {k: walk(v, k) for k, v in node.items()}
        if isinstance(node, list):
            return [walk(item, key) for item in node]
        if field_set is not None:
            if key in field_set and (node is None or isinstance(node, str)):
                return parse_pocketbase_datetime(node)
            return node
        if isinstance(node, str) and _DATETIME_PATTERN.match(node.strip()):
            return parse_pocketbase_datetime(node)
        return node

    return walk(value, None)
