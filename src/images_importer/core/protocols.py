"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol

from .models import Candidate, CandidateResult, ImportRecord, ImportItem, MediaType


class RecordStoreProtocol(Protocol):
    """Protocol for the record storage collaborator.

    Implementations must tolerate concurrent calls from worker threads.
    """

    def exists(self, resource: str) -> bool:
        """Return True if a record with this resource path is stored."""
        ...

    def insert(self, record: ImportRecord) -> str:
        """Insert a record and return its assigned identifier."""
        ...


class HttpResponseProtocol(Protocol):
    """Protocol for a streamed HTTP response."""

    status_code: int

    def raise_for_status(self) -> None:
        """Raise for non-2xx responses."""
        ...

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        """Iterate over the body in chunks."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...


class HttpSessionProtocol(Protocol):
    """Protocol for HTTP session operations."""

    def get(self, url: str, **kwargs: Any) -> HttpResponseProtocol:
        """Issue a GET request."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class Fetcher(ABC):
    """Abstract service for retrieving a candidate to local disk."""

    @abstractmethod
    def fetch(
        self, candidate: Candidate, destination: Path, cancel_event: Any = None
    ) -> Path:
        """Download the candidate to ``destination``."""
        ...


class ContentClassifier(ABC):
    """Abstract service for classifying file content."""

    @abstractmethod
    def classify(self, path: Path) -> Optional[MediaType]:
        """Return the detected media type, or None if unrecognised."""
        ...


class CandidateImporter(ABC):
    """Abstract per-candidate import unit."""

    @abstractmethod
    def import_item(self, item: ImportItem, cancel_event: Any = None) -> CandidateResult:
        """Run one candidate through the pipeline; never raises."""
        ...
