"""Custom exceptions for the images importer."""


class ImagesImporterError(Exception):
    """Base exception for all images importer errors."""


class ConfigurationError(ImagesImporterError):
    """Error raised for invalid configuration options."""


class EmptyUploadError(ImagesImporterError):
    """Raised when no descriptor bytes were uploaded."""


class MalformedInputError(ImagesImporterError):
    """Raised when the uploaded descriptor cannot be used.

    ``reason`` is ``"not_json"`` when the bytes do not decode as JSON and
    ``"wrong_shape"`` when the decoded document lacks the expected layout.
    """

    NOT_JSON = "not_json"
    WRONG_SHAPE = "wrong_shape"

    def __init__(self, message: str, reason: str = WRONG_SHAPE):
        super().__init__(message)
        self.reason = reason


class DownloadFailedError(ImagesImporterError):
    """Raised when retrieving a candidate fails at the transport level."""


class RejectedNotImageError(ImagesImporterError):
    """Raised when downloaded content is not an accepted image format."""


class DuplicateResourceError(ImagesImporterError):
    """Raised when a destination resource is already known."""


class StorageUnavailableError(ImagesImporterError):
    """Raised when the record store cannot be reached."""
