import logging
import time
from threading import Lock, Thread

from celery import shared_task
from celery.signals import worker_process_init
from django.conf import settings

from .content_client import ContentApiClient, readiness_gate
from .processor import process_job
from .reconciliation import backoff_delay, run_full_sync
from .transformer import COLLECTION, PRODUCT, VARIANT

logger = logging.getLogger(__name__)

# Parents first, so variant entries can link to an existing product entry.
FULL_SYNC_ORDER = (PRODUCT, VARIANT, COLLECTION)

_init_lock = Lock()
_init_thread = None


@shared_task(name='cms_sync.process_sync_job')
def process_sync_job_task(job: dict) -> dict:
    """Process one sync job from a per-entity-type queue."""
    start_content_type_initialization()
    outcome = process_job(job)
    log = logger.info if outcome['success'] else logger.error
    log("%s job %s %s: %s", job.get('entity_type'), job.get('entity_id'), outcome['status'], outcome['message'])
    return outcome


@shared_task(name='cms_sync.full_sync')
def full_sync_task(entity_type: str) -> dict:
    start_content_type_initialization()
    return run_full_sync(entity_type)


@shared_task(name='cms_sync.full_sync_all')
def full_sync_all_task() -> dict:
    """
    Reconcile the whole catalog with the content space.

    Products go first so variant entries link to their parent in the same
    run; a new product's `variants` field catches up on the following run.
    """
    start_content_type_initialization()
    results = {entity_type: run_full_sync(entity_type) for entity_type in FULL_SYNC_ORDER}
    logger.info(
        "Full catalog sync complete. %s",
        ', '.join(f"{k}: {v['success_count']}/{v['total']}" for k, v in results.items()),
    )
    return results


def _initialize_content_types() -> bool:
    """Create missing content types, retrying with capped backoff. Returns True once the gate is open."""
    max_attempts = settings.CMS_INITIALIZATION_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        try:
            ContentApiClient().ensure_content_types()
            return True
        except Exception:
            logger.exception("Content type initialization failed (attempt %d/%d).", attempt, max_attempts)
        if attempt < max_attempts:
            time.sleep(backoff_delay(attempt, settings.CMS_BACKOFF_BASE, settings.CMS_BACKOFF_CAP))

    logger.error("Giving up on content type initialization after %d attempts.", max_attempts)
    return False


@worker_process_init.connect
def start_content_type_initialization(**kwargs):
    """
    Initialize content types in a background thread, once per process.

    Called when a pool child starts and again by every task, so solo and
    thread pools (which have no child processes) initialize on their first
    task, and a worker whose earlier attempts all failed tries again.
    """
    global _init_thread
    with _init_lock:
        if readiness_gate.is_ready:
            return
        if _init_thread is not None and _init_thread.is_alive():
            return
        _init_thread = Thread(target=_initialize_content_types, name='cms-content-types', daemon=True)
        _init_thread.start()
