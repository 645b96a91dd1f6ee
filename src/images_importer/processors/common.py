"""Common functions shared across all processor implementations."""

import threading
from typing import Callable, Dict, List, Optional

from ..core import (
    CandidateResult,
    FetchOutcome,
    ImportConfig,
    ImportItem,
    get_logger,
)

ImportFunction = Callable[[ImportItem, Optional[threading.Event]], CandidateResult]


def failed_result(item: ImportItem, error: str) -> CandidateResult:
    """Terminal result for an item whose import raised unexpectedly."""
    return CandidateResult(
        source_url=item.candidate.source_url,
        resource=item.resource,
        outcome=FetchOutcome.DOWNLOAD_FAILED,
        error=error,
    )


def start_deadline_timer(
    config: ImportConfig, cancel_event: threading.Event
) -> Optional[threading.Timer]:
    """Set ``cancel_event`` once the batch deadline passes, if one is configured."""
    if config.batch_timeout is None:
        return None

    def _expire() -> None:
        get_logger("processor").warning(
            f"Batch deadline of {config.batch_timeout}s exceeded, cancelling remaining work"
        )
        cancel_event.set()

    timer = threading.Timer(config.batch_timeout, _expire)
    timer.daemon = True
    timer.start()
    return timer


def count_results(results: List[CandidateResult]) -> Dict[FetchOutcome, int]:
    """
    Count results per outcome.

    Args:
        results: List of candidate results

    Returns:
        Mapping of every outcome to its number of results
    """
    counts = {outcome: 0 for outcome in FetchOutcome}
    for result in results:
        counts[result.outcome] += 1
    return counts


def log_batch_summary(processor_name: str, results: List[CandidateResult]) -> None:
    """Log per-outcome totals for a processed batch."""
    logger = get_logger("processor")
    counts = count_results(results)
    logger.info(
        f"{processor_name} batch finished: {len(results)} items - "
        + ", ".join(f"{outcome.value}: {count}" for outcome, count in counts.items())
    )
