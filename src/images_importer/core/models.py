"""Shared data models for the images importer."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ImportConfig(BaseModel):
    """Configuration for an import run."""

    upload_dir: Path
    resource_prefix: str = "/uploads/"
    max_workers: int = Field(default=8, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    batch_timeout: Optional[float] = Field(default=None, gt=0)
    chunk_size: int = Field(default=64 * 1024, gt=0)
    sniff_bytes: int = Field(default=262, gt=0)
    processor: str = Field(default="multithread", pattern="^(serial|multithread)$")
    debug: bool = False


class Candidate(BaseModel):
    """A remote image reference extracted from a descriptor entry."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    extension: str
    origin_service: Optional[Any] = None
    origin_user_id: Optional[Any] = None
    origin_username: Optional[Any] = None


class ImportItem(BaseModel):
    """A candidate paired with its resolved destination."""

    candidate: Candidate
    resource: str
    file_path: Path


class FetchOutcome(str, Enum):
    """Terminal outcome of a single candidate."""

    SKIPPED_DUPLICATE = "skipped_duplicate"
    DOWNLOAD_FAILED = "download_failed"
    REJECTED_NOT_IMAGE = "rejected_not_image"
    ACCEPTED = "accepted"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class MediaType(str, Enum):
    """Image container formats recognised by content sniffing."""

    PNG = "image/png"
    JPEG = "image/jpeg"
    GIF = "image/gif"


class CandidateResult(BaseModel):
    """Result of importing a single candidate."""

    source_url: str
    resource: str = ""
    outcome: FetchOutcome
    record_id: Optional[str] = None
    media_type: Optional[MediaType] = None
    error: str = ""
    processing_time: float = 0.0


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _utcnow() -> datetime:
    # Stored dates carry millisecond precision
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


class ImportRecord(BaseModel):
    """Persisted record of one accepted image, pending moderation."""

    model_config = ConfigDict(populate_by_name=True)

    imported_date: datetime = Field(default_factory=_utcnow, alias="importedDate")
    modified_date: datetime = Field(default_factory=_utcnow, alias="modifiedDate")
    source: Optional[Any] = None
    user_id: Optional[Any] = Field(default=None, alias="userId")
    username: Optional[Any] = None
    resource: str
    colour: Optional[Dict[str, int]] = None
    is_approved: Optional[bool] = Field(default=None, alias="isApproved")
    order: Optional[int] = None

    @field_serializer("imported_date", "modified_date")
    def serialize_epoch_ms(self, value: datetime) -> int:
        return to_epoch_ms(value)

    @classmethod
    def from_candidate(cls, candidate: Candidate, resource: str) -> "ImportRecord":
        """Build a fresh record for an accepted candidate."""
        now = _utcnow()
        return cls(
            imported_date=now,
            modified_date=now,
            source=candidate.origin_service,
            user_id=candidate.origin_user_id,
            username=candidate.origin_username,
            resource=resource,
        )

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the camelCase document layout used by stores."""
        return self.model_dump(by_alias=True, mode="json")


class ImportSummary(BaseModel):
    """Aggregate result of an import run."""

    total_entries: int = 0
    candidates: int = 0
    records_created: int = 0
    duplicates: int = 0
    download_failures: int = 0
    rejected: int = 0
    storage_failures: int = 0
    storage_unavailable: bool = False
    processing_time: float = 0.0
