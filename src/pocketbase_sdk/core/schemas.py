# src/pocketbase_sdk/core/schemas.py
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from pocketbase_sdk.core.config import settings

# Fields managed by PocketBase itself. Read from responses, never sent back.
METADATA_FIELDS = frozenset({"id", "created", "updated", "collectionId", "collectionName"})


# --- Bulk Schemas ---

class UpsertItem(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict, description="Field values to write.")
    id: Optional[str] = Field(None, description="Known record ID. When set, an update is tried first.")


class BulkOperationError(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(..., description="Position of the item in the input sequence.")
    id: Optional[str] = Field(None, description="Record ID, when one is known for the item.")
    error: str


class BulkResult(BaseModel):
    """
    Aggregated outcome of one bulk call.
    success_ids is in completion order; errors is sorted by input index.
    """
    model_config = ConfigDict(frozen=True)

    success_ids: Tuple[str, ...] = Field(default_factory=tuple)
    errors: Tuple[BulkOperationError, ...] = Field(default_factory=tuple)

    @computed_field
    @property
    def success_count(self) -> int:
        return len(self.success_ids)

    @computed_field
    @property
    def failure_count(self) -> int:
        return len(self.errors)

    @computed_field
    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def failed_indexes(self) -> List[int]:
        return [e.index for e in self.errors]


# --- Migration Schemas ---

class MigrationConfig(BaseModel):
    destination_url: str = Field(..., description="Base URL of the destination PocketBase instance.")
    destination_token: str = Field(..., description="Bearer token for the destination instance.")
    collection_name: str = Field(..., description="Collection to migrate. Same name on source and destination.")
    skip_existing: bool = Field(False, description="Skip records whose data already exists in the destination.")
    batch_size: int = Field(0, description="Records per batch. 0 means the default batch size.")

    @field_validator("destination_url", "destination_token", "collection_name")
    @classmethod
    def must_not_be_empty(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must be a non-empty string")
        return v.strip()

    @field_validator("destination_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("batch_size")
    @classmethod
    def batch_size_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("batch_size cannot be negative")
        return v

    @property
    def effective_batch_size(self) -> int:
        return self.batch_size or settings.MIGRATION_DEFAULT_BATCH_SIZE


class MigrationRecord(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict, description="Caller-visible fields only.")
    source_id: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "MigrationRecord":
        data = {k: v for k, v in item.items() if k not in METADATA_FIELDS and k != "expand"}
        return cls(
            data=data,
            source_id=item.get("id"),
            created=item.get("created"),
            updated=item.get("updated"),
        )


class MigrationRecordError(BaseModel):
    model_config = ConfigDict(frozen=True)

    record_id: Optional[str] = Field(None, description="ID of the record in the source collection.")
    index: int = Field(..., description="Zero-based position in the extracted source records.")
    operation: str = Field(..., description="'create' or 'existence_check'.")
    error: str


class MigrationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    skipped_records: int = 0
    errors: Tuple[MigrationRecordError, ...] = Field(default_factory=tuple)
    processing_time: float = Field(0.0, description="Wall-clock duration in seconds.")
    source_collection: str = ""
    destination_collection: str = ""
    summary: str = ""

    @model_validator(mode="after")
    def counts_add_up(self) -> "MigrationResult":
        if self.successful_records + self.failed_records + self.skipped_records != self.total_records:
            raise ValueError(
                "successful_records + failed_records + skipped_records must equal total_records"
            )
        return self
