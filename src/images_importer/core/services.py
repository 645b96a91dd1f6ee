"""Service implementations for the image import pipeline."""

import threading
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import urlsplit

from .descriptor import create_import_item, extract_candidate, parse_descriptor
from .error_handling import (
    BatchOperationContextManager,
    storage_operation,
    with_error_handling,
)
from .exceptions import (
    DownloadFailedError,
    DuplicateResourceError,
    EmptyUploadError,
    RejectedNotImageError,
    StorageUnavailableError,
)
from .models import (
    Candidate,
    CandidateResult,
    FetchOutcome,
    ImportConfig,
    ImportItem,
    ImportRecord,
    ImportSummary,
    MediaType,
)
from .observability import (
    LogContext,
    MetricsCollector,
    log_operation_end,
    log_operation_start,
)
from .protocols import (
    CandidateImporter,
    ContentClassifier,
    Fetcher,
    HttpSessionProtocol,
    LoggerProtocol,
    RecordStoreProtocol,
)
from .sniffing import ACCEPTED_MEDIA_TYPES, sniff_file

SUPPORTED_SCHEMES = ("http", "https")

ProcessBatchFunction = Callable[
    [List[ImportItem], Callable[..., CandidateResult], ImportConfig, threading.Event],
    List[CandidateResult],
]


def _discard(path: Path) -> None:
    Path(path).unlink(missing_ok=True)


class DedupGate:
    """Skips resources that are stored already or claimed earlier in this run."""

    def __init__(self, store: RecordStoreProtocol):
        self._store = store
        self._claimed: set[str] = set()
        self._lock = threading.Lock()

    def claim(self, resource: str) -> bool:
        """Claim ``resource`` for this run; False if it was already claimed."""
        with self._lock:
            if resource in self._claimed:
                return False
            self._claimed.add(resource)
            return True

    @storage_operation
    def is_known(self, resource: str) -> bool:
        """Ask storage whether a record with this resource exists."""
        return bool(self._store.exists(resource))


class HttpFetcher(Fetcher):
    """Streams a candidate's remote content to a local file."""

    def __init__(self, session: HttpSessionProtocol, config: ImportConfig):
        self._session = session
        self._config = config

    def fetch(
        self,
        candidate: Candidate,
        destination: Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> Path:
        """Download ``candidate`` to ``destination``.

        The partially written file is removed on any failure.

        Raises:
            DownloadFailedError: unsupported scheme, transport error, non-2xx
                status, timeout, local write error or cancellation.
        """
        scheme = urlsplit(candidate.source_url).scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise DownloadFailedError(f"Unsupported URL scheme: {scheme or 'none'}")

        try:
            self._download(candidate.source_url, destination, cancel_event)
        except DownloadFailedError:
            _discard(destination)
            raise
        except OSError as e:
            _discard(destination)
            raise DownloadFailedError(f"Could not write {destination}: {e}") from e
        return destination

    @with_error_handling
    def _download(
        self, url: str, destination: Path, cancel_event: Optional[threading.Event]
    ) -> None:
        started = time.monotonic()
        response = self._session.get(
            url, stream=True, timeout=self._config.request_timeout
        )
        try:
            response.raise_for_status()
            with open(destination, "wb") as handle:
                for chunk in response.iter_content(chunk_size=self._config.chunk_size):
                    if cancel_event is not None and cancel_event.is_set():
                        raise DownloadFailedError("Import cancelled during download")
                    if time.monotonic() - started > self._config.request_timeout:
                        raise DownloadFailedError(
                            f"Download exceeded {self._config.request_timeout}s"
                        )
                    if chunk:
                        handle.write(chunk)
        finally:
            response.close()


class ContentSniffer(ContentClassifier):
    """Classifies downloaded files by their magic bytes."""

    def __init__(self, config: ImportConfig, logger: LoggerProtocol):
        self._limit = config.sniff_bytes
        self._logger = logger

    def classify(self, path: Path) -> Optional[MediaType]:
        try:
            media_type = sniff_file(path, self._limit)
        except OSError as e:
            self._logger.warning(f"Could not read {path} for sniffing: {e}")
            return None
        if media_type not in ACCEPTED_MEDIA_TYPES:
            return None
        return media_type


class CandidateImportService(CandidateImporter):
    """Runs one candidate through dedup, fetch, sniff and persist."""

    def __init__(
        self,
        dedup_gate: DedupGate,
        fetcher: Fetcher,
        classifier: ContentClassifier,
        store: RecordStoreProtocol,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._dedup_gate = dedup_gate
        self._fetcher = fetcher
        self._classifier = classifier
        self._store = store
        self._logger = logger
        self._metrics_collector = metrics_collector

    def import_item(
        self, item: ImportItem, cancel_event: Optional[threading.Event] = None
    ) -> CandidateResult:
        """Import a single candidate, converting every failure into a result."""
        start_time = time.time()
        log_context = LogContext(
            correlation_id=f"cand_{Path(item.resource).stem[:12]}",
            operation="import_candidate",
            component="candidate_import_service",
        ).with_metadata(source_url=item.candidate.source_url, resource=item.resource)

        result = CandidateResult(
            source_url=item.candidate.source_url,
            resource=item.resource,
            outcome=FetchOutcome.DOWNLOAD_FAILED,
        )

        try:
            self._check_cancelled(cancel_event)

            if self._dedup_gate.is_known(item.resource):
                raise DuplicateResourceError(f"{item.resource} is already stored")

            self._logger.debug("Downloading", log_context.with_operation("fetch"))
            self._timed("fetch", self._fetcher.fetch, item.candidate, item.file_path, cancel_event)

            result.media_type = self._timed("sniff", self._sniff, item)

            try:
                self._check_cancelled(cancel_event)
                record = ImportRecord.from_candidate(item.candidate, item.resource)
                result.record_id = self._timed("persist", self._insert, record)
            except (DownloadFailedError, StorageUnavailableError):
                _discard(item.file_path)
                raise

            result.outcome = FetchOutcome.ACCEPTED
            self._logger.info(
                "Imported image",
                log_context,
                record_id=result.record_id,
                media_type=result.media_type.value,
            )

        except DuplicateResourceError as e:
            result.outcome = FetchOutcome.SKIPPED_DUPLICATE
            result.error = str(e)
            self._logger.debug("Skipping duplicate", log_context)
        except DownloadFailedError as e:
            result.outcome = FetchOutcome.DOWNLOAD_FAILED
            result.error = str(e)
            self._logger.warning("Download failed", log_context.with_metadata(error=str(e)))
        except RejectedNotImageError as e:
            result.outcome = FetchOutcome.REJECTED_NOT_IMAGE
            result.error = str(e)
            self._logger.warning("Rejected non-image content", log_context)
        except StorageUnavailableError as e:
            result.outcome = FetchOutcome.STORAGE_UNAVAILABLE
            result.error = str(e)
            self._logger.error("Storage unavailable", log_context.with_metadata(error=str(e)))
        except Exception:
            _discard(item.file_path)
            raise
        finally:
            result.processing_time = time.time() - start_time

        return result

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DownloadFailedError("Batch deadline exceeded")

    def _sniff(self, item: ImportItem) -> MediaType:
        media_type = self._classifier.classify(item.file_path)
        if media_type is None:
            _discard(item.file_path)
            raise RejectedNotImageError(
                f"{item.candidate.source_url} is not a PNG, JPEG or GIF image"
            )
        return media_type

    @storage_operation
    def _insert(self, record: ImportRecord) -> str:
        return str(self._store.insert(record))

    def _timed(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        start_time = time.time()
        try:
            value = func(*args)
        except Exception as e:
            if self._metrics_collector:
                self._metrics_collector.record(operation, start_time, False, str(e))
            raise
        if self._metrics_collector:
            self._metrics_collector.record(operation, start_time, True)
        return value


class WorkItemFactory:
    """Factory for creating work items."""

    @staticmethod
    def create_work_items(
        candidates: List[Candidate], config: ImportConfig, dedup_gate: DedupGate
    ) -> Tuple[List[ImportItem], int]:
        """Resolve destinations and drop candidates already claimed in this run.

        Returns:
            The surviving work items and the number of in-run duplicates.
        """
        work_items = []
        duplicates = 0

        for candidate in candidates:
            item = create_import_item(candidate, config)
            if dedup_gate.claim(item.resource):
                work_items.append(item)
            else:
                duplicates += 1

        return work_items, duplicates


class ImportOrchestrator:
    """Main orchestrator for the import pipeline."""

    def __init__(
        self,
        store: RecordStoreProtocol,
        fetcher: Fetcher,
        classifier: ContentClassifier,
        process_batch_fn: ProcessBatchFunction,
        config: ImportConfig,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._store = store
        self._fetcher = fetcher
        self._classifier = classifier
        self._process_batch_fn = process_batch_fn
        self._config = config
        self._logger = logger
        self._metrics_collector = metrics_collector

    def import_batch(self, raw: Optional[bytes]) -> ImportSummary:
        """
        Import every image referenced by an uploaded descriptor.

        Args:
            raw: The uploaded descriptor bytes.

        Returns:
            An ImportSummary; ``records_created`` is the number of records
            inserted. A partial batch is a normal outcome.

        Raises:
            EmptyUploadError: no bytes were provided.
            MalformedInputError: the descriptor is not JSON or has the wrong shape.
        """
        if not raw:
            raise EmptyUploadError("No descriptor was uploaded")

        start_time = time.time()
        context = log_operation_start(
            "import_batch",
            self._logger,
            LogContext(component="import_orchestrator"),
            upload_bytes=len(raw),
        )

        entries = parse_descriptor(raw)
        summary = ImportSummary(total_entries=len(entries))

        candidates = [c for c in map(extract_candidate, entries) if c is not None]
        summary.candidates = len(candidates)

        dedup_gate = DedupGate(self._store)
        work_items, summary.duplicates = WorkItemFactory.create_work_items(
            candidates, self._config, dedup_gate
        )

        if not work_items:
            self._logger.info("No new candidates to import", context)
            summary.processing_time = time.time() - start_time
            log_operation_end("import_batch", self._logger, context, records_created=0)
            return summary

        service = CandidateImportService(
            dedup_gate,
            self._fetcher,
            self._classifier,
            self._store,
            self._logger,
            self._metrics_collector,
        )
        cancel_event = threading.Event()

        with BatchOperationContextManager(
            operation_name=f"Import of {len(work_items)} candidates"
        ) as batch_manager:
            results = self._process_batch_fn(
                work_items, service.import_item, self._config, cancel_event
            )
            for result in results:
                self._tally(summary, result)
                if result.outcome not in (
                    FetchOutcome.ACCEPTED,
                    FetchOutcome.SKIPPED_DUPLICATE,
                ):
                    batch_manager.add_error(
                        result.error or "Unknown error",
                        item_identifier=result.source_url,
                        kind=result.outcome.value,
                    )

        summary.storage_unavailable = (
            summary.storage_failures > 0 and summary.storage_failures == len(results)
        )
        if summary.storage_unavailable:
            self._logger.error(
                "Storage was unavailable for every candidate",
                context,
                storage_failures=summary.storage_failures,
            )

        summary.processing_time = time.time() - start_time
        log_operation_end(
            "import_batch",
            self._logger,
            context,
            records_created=summary.records_created,
            duplicates=summary.duplicates,
            download_failures=summary.download_failures,
            rejected=summary.rejected,
            storage_failures=summary.storage_failures,
        )
        return summary

    @staticmethod
    def _tally(summary: ImportSummary, result: CandidateResult) -> None:
        if result.outcome is FetchOutcome.ACCEPTED:
            summary.records_created += 1
        elif result.outcome is FetchOutcome.SKIPPED_DUPLICATE:
            summary.duplicates += 1
        elif result.outcome is FetchOutcome.REJECTED_NOT_IMAGE:
            summary.rejected += 1
        elif result.outcome is FetchOutcome.STORAGE_UNAVAILABLE:
            summary.storage_failures += 1
        else:
            summary.download_failures += 1
