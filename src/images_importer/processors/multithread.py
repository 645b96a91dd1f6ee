"""Multithreaded processor implementation - uses a bounded thread pool."""

import threading
from typing import List, Optional
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..core import CandidateResult, ImportConfig, ImportItem, get_logger
from .common import ImportFunction, failed_result, log_batch_summary, start_deadline_timer


def process_batch(
    batch: List[ImportItem],
    import_fn: ImportFunction,
    config: ImportConfig,
    cancel_event: Optional[threading.Event] = None,
) -> List[CandidateResult]:
    """
    Import a batch of candidates using a fixed-size thread pool.

    Args:
        batch: List of import items
        import_fn: Per-candidate import function, safe to call from threads
        config: Import configuration (``max_workers``, ``batch_timeout``)
        cancel_event: Event set when the batch deadline passes

    Returns:
        List of candidate results in completion order, one per item
    """
    logger = get_logger("processor")
    cancel_event = cancel_event or threading.Event()
    results: List[CandidateResult] = []
    if not batch:
        return results

    max_workers = min(config.max_workers, len(batch))

    timer = start_deadline_timer(config, cancel_event)
    try:
        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="images-importer"
        ) as executor:
            future_to_item = {
                executor.submit(import_fn, item, cancel_event): item for item in batch
            }

            for future in as_completed(future_to_item):
                try:
                    results.append(future.result())
                except Exception as e:
                    item = future_to_item[future]
                    logger.error(
                        f"[{item.candidate.source_url}] Unexpected import failure: {e}",
                        exc_info=True,
                    )
                    results.append(failed_result(item, str(e)))
    finally:
        if timer is not None:
            timer.cancel()

    log_batch_summary("Multithreaded", results)
    return results
