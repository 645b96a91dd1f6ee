"""Core utilities and shared components for the images importer."""

from .descriptor import (
    ALLOWED_EXTENSIONS,
    create_import_item,
    destination_filename,
    extract_candidate,
    parse_descriptor,
)
from .logging_config import get_logger, set_debug_logging, setup_logger
from .exceptions import (
    ImagesImporterError,
    ConfigurationError,
    EmptyUploadError,
    MalformedInputError,
    DownloadFailedError,
    RejectedNotImageError,
    DuplicateResourceError,
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
from .sniffing import sniff_bytes, sniff_file

__all__ = [
    "ImportConfig",
    "Candidate",
    "ImportItem",
    "CandidateResult",
    "FetchOutcome",
    "ImportRecord",
    "ImportSummary",
    "MediaType",
    "ALLOWED_EXTENSIONS",
    "parse_descriptor",
    "extract_candidate",
    "destination_filename",
    "create_import_item",
    "sniff_bytes",
    "sniff_file",
    "setup_logger",
    "get_logger",
    "set_debug_logging",
    "ImagesImporterError",
    "ConfigurationError",
    "EmptyUploadError",
    "MalformedInputError",
    "DownloadFailedError",
    "RejectedNotImageError",
    "DuplicateResourceError",
    "StorageUnavailableError",
]
