"""Serial processor implementation - imports candidates one by one."""

import threading
from typing import List, Optional

from ..core import CandidateResult, ImportConfig, ImportItem, get_logger
from .common import ImportFunction, failed_result, log_batch_summary, start_deadline_timer


def process_batch(
    batch: List[ImportItem],
    import_fn: ImportFunction,
    config: ImportConfig,
    cancel_event: Optional[threading.Event] = None,
) -> List[CandidateResult]:
    """
    Imports a batch serially, one candidate at a time, in the current thread.

    Args:
        batch: A list of `ImportItem` objects to import.
        import_fn: Per-candidate import function.
        config: `ImportConfig` with the batch deadline.
        cancel_event: Event set when the batch deadline passes.

    Returns:
        A list of `CandidateResult` objects, one per item, in input order.
    """
    logger = get_logger("processor")
    cancel_event = cancel_event or threading.Event()
    results = []

    timer = start_deadline_timer(config, cancel_event)
    try:
        for item in batch:
            try:
                results.append(import_fn(item, cancel_event))
            except Exception as e:
                logger.error(
                    f"[{item.candidate.source_url}] Unexpected import failure: {e}",
                    exc_info=True,
                )
                results.append(failed_result(item, str(e)))
    finally:
        if timer is not None:
            timer.cancel()

    log_batch_summary("Serial", results)
    return results
