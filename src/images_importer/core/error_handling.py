# src/images_importer/core/error_handling.py

import functools
import logging

import requests

from .exceptions import (
    DownloadFailedError,
    ImagesImporterError,
    StorageUnavailableError,
)


def with_error_handling(func):
    """
    A decorator to map transport failures onto the importer's exceptions.

    ``requests`` errors (connection failures, timeouts, bad status codes,
    broken streams) become ``DownloadFailedError``. Importer errors pass
    through untouched; anything else is logged and re-raised.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ImagesImporterError:
            raise
        except requests.exceptions.Timeout as e:
            logger.warning(f"Timed out in '{func.__name__}': {e}")
            raise DownloadFailedError(f"Request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Transport error in '{func.__name__}': {e}")
            raise DownloadFailedError(f"Download failed: {e}") from e
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            raise
    return wrapper


def storage_operation(func):
    """
    Decorator for calls into a record store.

    Any failure that is not already an importer error is reported as
    ``StorageUnavailableError`` so that callers only handle one kind.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ImagesImporterError:
            raise
        except Exception as e:
            logger.error(f"Storage operation '{func.__name__}' failed: {e}", exc_info=True)
            raise StorageUnavailableError(
                f"Storage operation '{func.__name__}' failed: {e}"
            ) from e
    return wrapper


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.info(
                    f"  Error {i+1}/{len(self.errors)} for item '{error_detail['item']}' "
                    f"({error_detail['kind']}): {error_detail['error']}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never suppress exceptions raised inside the block
        return False

    def add_error(self, error_message, item_identifier="Unknown item", kind="error"):
        """
        Report an error for a specific item.

        Args:
            error_message: The error message or exception.
            item_identifier: A string identifying the failed item (e.g. its URL).
            kind: Short label for the failure category.
        """
        self.errors.append(
            {"item": item_identifier, "error": str(error_message), "kind": kind}
        )
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
