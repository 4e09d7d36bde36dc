import logging
import time
from collections import deque
from threading import Condition, Timer

from django.conf import settings

from . import catalog
from .processor import DELETE, NOT_FOUND, SKIPPED, UPDATE, build_job, process_job

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


def backoff_delay(attempts: int, base: float, cap: float) -> float:
    """Exponential backoff after the given number of failed attempts, capped."""
    return min(base * 2 ** (attempts - 1), cap)


class _WorkList:
    """
    FIFO of pending items; retries come back at the tail via timers.

    `pop()` blocks while the list is empty but retries are still scheduled,
    and returns None once there is nothing left to do.
    """

    def __init__(self, items):
        self._items = deque(items)
        self._scheduled = 0
        self._cond = Condition()

    def __len__(self):
        with self._cond:
            return len(self._items)

    def pop(self):
        with self._cond:
            while not self._items and self._scheduled:
                self._cond.wait()
            return self._items.popleft() if self._items else None

    def push_later(self, item, delay: float):
        with self._cond:
            self._scheduled += 1
        timer = Timer(delay, self._requeue, args=(item,))
        timer.daemon = True
        timer.start()

    def _requeue(self, item):
        with self._cond:
            self._scheduled -= 1
            self._items.append(item)
            self._cond.notify()


def run_full_sync(entity_type: str, process=process_job, max_attempts=None,
                  backoff_base=None, backoff_cap=None, rate_limit_delay=None) -> dict:
    """
    Sync every entity of `entity_type` to the content space.

    Items are processed one at a time. A failed item goes back to the end of
    the list after an exponential backoff until it has used `max_attempts`;
    an entity that disappeared mid-run is not retried. Soft-deleted entities
    are swept as deletions.
    """
    max_attempts = max_attempts or settings.CMS_BULK_MAX_ATTEMPTS
    backoff_base = settings.CMS_BACKOFF_BASE if backoff_base is None else backoff_base
    backoff_cap = settings.CMS_BACKOFF_CAP if backoff_cap is None else backoff_cap
    if rate_limit_delay is None:
        rate_limit_delay = 1.0 / settings.CMS_RATE_LIMIT

    started = time.monotonic()
    logger.info("Starting full %s sync.", entity_type)

    items = [
        {
            'entity_id': entity.pk,
            'operation_type': DELETE if catalog.is_deleted(entity) else UPDATE,
            'attempts': 0,
        }
        for entity in catalog.list_entities(entity_type)
    ]
    total = len(items)
    logger.info("Found %d %s entities to sync.", total, entity_type)

    work = _WorkList(items)
    success_count = skipped_count = processed = 0
    errors = []

    while True:
        item = work.pop()
        if item is None:
            break

        item['attempts'] += 1
        entity_id = item['entity_id']
        logger.debug(
            "Processing %s %s (attempt %d/%d).",
            entity_type, entity_id, item['attempts'], max_attempts,
        )

        time.sleep(rate_limit_delay)
        outcome = process(build_job(
            entity_type, entity_id, item['operation_type'], retry_count=item['attempts'] - 1,
        ))

        if outcome['success']:
            success_count += 1
            if outcome.get('status') == SKIPPED:
                skipped_count += 1
            processed += 1
        elif outcome.get('status') != NOT_FOUND and item['attempts'] < max_attempts:
            delay = backoff_delay(item['attempts'], backoff_base, backoff_cap)
            logger.info(
                "Requeuing %s %s for retry in %.2fs (attempt %d/%d failed: %s).",
                entity_type, entity_id, delay, item['attempts'], max_attempts, outcome['message'],
            )
            work.push_later(item, delay)
            continue
        else:
            processed += 1
            errors.append({
                'entity_id': str(entity_id),
                'error': f"Failed after {item['attempts']} attempts. Last error: {outcome['message']}",
                'attempts': item['attempts'],
            })
            logger.error(
                "%s %s failed permanently after %d attempts.",
                entity_type, entity_id, item['attempts'],
            )

        if processed % PROGRESS_EVERY == 0:
            logger.info(
                "Progress: %d/%d processed, %d successful, %d failed, %d in queue.",
                processed, total, success_count, len(errors), len(work),
            )

    logger.info(
        "Full %s sync completed in %.1fs: %d/%d successful, %d permanently failed.",
        entity_type, time.monotonic() - started, success_count, total, len(errors),
    )
    return {
        'success': not errors,
        'total': total,
        'success_count': success_count,
        'skipped_count': skipped_count,
        'error_count': len(errors),
        'errors': errors,
    }
