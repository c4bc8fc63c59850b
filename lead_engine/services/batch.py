"""
Batch lead scoring.

Leads are scored one at a time with a pause between calls to stay under
provider rate limits. A failure is recorded against its lead and the batch
moves on. Runs inline (CLI) or as an RQ job enqueued from the API.
"""
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional

from lead_engine.config import BATCH_DELAY_SECONDS, BATCH_JOB_TIMEOUT
from lead_engine.database import get_session
from lead_engine.services.intelligence import perform_lead_scoring
from lead_engine.services.notifications import notify_batch_complete
from lead_engine.services.sql_store import SqlLeadStore

logger = logging.getLogger('services.batch')

_queue = None


def _get_queue():
    global _queue
    if _queue is None:
        from lead_engine.extensions import redis_client
        from rq import Queue
        _queue = Queue(connection=redis_client)
    return _queue


@dataclass
class BatchSummary:
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self):
        return asdict(self)


def _active_lead_ids(statuses=None) -> List[str]:
    session = get_session()
    try:
        return SqlLeadStore(session).list_active_lead_ids(statuses)
    finally:
        session.close()


def score_all_leads(
    lead_ids: Optional[List[str]] = None,
    force: bool = False,
    delay: Optional[float] = None,
    statuses: Optional[List[str]] = None,
    notify: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchSummary:
    """
    Score every live lead (or the given lead_ids) sequentially.

    A lead whose score is still fresh counts as skipped unless force=True.
    """
    delay = BATCH_DELAY_SECONDS if delay is None else delay
    ids = list(lead_ids) if lead_ids is not None else _active_lead_ids(statuses)
    summary = BatchSummary()
    started = time.monotonic()

    logger.info("Batch scoring %d lead(s) (force=%s, delay=%.2fs)", len(ids), force, delay)

    for i, lead_id in enumerate(ids):
        if i > 0 and delay > 0:
            sleep(delay)
        summary.processed += 1
        try:
            result = perform_lead_scoring(lead_id, force=force)
        except Exception as e:
            summary.failed += 1
            summary.errors.append({'lead_id': lead_id, 'error': str(e)})
            logger.error("Lead %s failed to score: %s", lead_id, e, exc_info=True)
            continue

        if result.get('scored'):
            summary.succeeded += 1
            logger.info(
                "Lead %s: score=%s tier=%s close=%.0f%%",
                lead_id, result['overall_score'], result['priority_tier'],
                (result.get('predicted_close_probability') or 0) * 100,
            )
        else:
            summary.skipped += 1

    summary.duration_seconds = round(time.monotonic() - started, 2)
    logger.info(
        "Batch done: processed=%d scored=%d skipped=%d failed=%d in %.1fs",
        summary.processed, summary.succeeded, summary.skipped, summary.failed, summary.duration_seconds,
    )

    if notify:
        notify_batch_complete(summary)
    return summary


def run_score_all_job(force: bool = False, statuses: Optional[List[str]] = None) -> dict:
    """RQ entry point. Returns the summary as a dict so it is stored as the job result."""
    return score_all_leads(force=force, statuses=statuses).to_dict()


def enqueue_score_all(force: bool = False, statuses: Optional[List[str]] = None) -> str:
    """Queue a batch scoring job on the default RQ queue and return the job id."""
    job = _get_queue().enqueue(
        run_score_all_job, force=force, statuses=statuses, job_timeout=BATCH_JOB_TIMEOUT,
    )
    logger.info("Enqueued batch scoring job %s (force=%s)", job.id, force)
    return job.id
