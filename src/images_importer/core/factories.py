"""Factory classes for creating configured service instances."""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from ..processors import PROCESSORS
from .exceptions import ConfigurationError
from .models import ImportConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import HttpSessionProtocol, LoggerProtocol, RecordStoreProtocol
from .services import (
    ContentSniffer,
    HttpFetcher,
    ImportOrchestrator,
    ProcessBatchFunction,
)

USER_AGENT = "images-importer/0.1.0"


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str, level: int = logging.INFO) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level)


class HttpSessionFactory:
    """Factory for creating HTTP sessions."""

    @staticmethod
    def create_session(pool_size: int = 8) -> HttpSessionProtocol:
        """Create a session whose connection pools fit the worker count."""
        session = requests.Session()
        session.headers["User-Agent"] = USER_AGENT
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session


def get_batch_processor(name: str) -> ProcessBatchFunction:
    """Look up a batch processor by strategy name."""
    try:
        return PROCESSORS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown processor: {name!r}") from None


class ImportPipelineFactory:
    """Factory for creating the complete import pipeline."""

    @staticmethod
    def create_pipeline(
        store: RecordStoreProtocol,
        config: ImportConfig,
        session: Optional[HttpSessionProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> ImportOrchestrator:
        """Create a fully configured import pipeline."""

        if not config.upload_dir.is_dir():
            raise ConfigurationError(
                f"Upload directory does not exist: {config.upload_dir}"
            )

        if session is None:
            session = HttpSessionFactory.create_session(config.max_workers)

        if logger is None:
            logger = LoggerFactory.create_logger(
                "images_importer", logging.DEBUG if config.debug else logging.INFO
            )

        fetcher = HttpFetcher(session, config)
        sniffer = ContentSniffer(config, logger)

        return ImportOrchestrator(
            store=store,
            fetcher=fetcher,
            classifier=sniffer,
            process_batch_fn=get_batch_processor(config.processor),
            config=config,
            logger=logger,
            metrics_collector=metrics_collector,
        )


def import_images(
    raw: Optional[bytes],
    store: RecordStoreProtocol,
    config: ImportConfig,
    session: Optional[HttpSessionProtocol] = None,
    logger: Optional[LoggerProtocol] = None,
) -> int:
    """Import a descriptor and return only the number of records created."""
    pipeline = ImportPipelineFactory.create_pipeline(
        store, config, session=session, logger=logger
    )
    return pipeline.import_batch(raw).records_created
