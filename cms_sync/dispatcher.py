import logging
from functools import partial

from django.db import transaction
from django.dispatch import receiver

from .events import CREATED, DELETED, UPDATED, collection_event, product_event, product_variant_event
from .processor import CREATE, DELETE, UPDATE, build_job
from .tasks import process_sync_job_task
from .transformer import COLLECTION, PRODUCT, VARIANT

logger = logging.getLogger(__name__)

SYNC_QUEUES = {
    PRODUCT: 'cms-product-sync',
    VARIANT: 'cms-variant-sync',
    COLLECTION: 'cms-collection-sync',
}

OPERATION_FOR_KIND = {
    CREATED: CREATE,
    UPDATED: UPDATE,
    DELETED: DELETE,
}


def enqueue_sync_job(entity_type: str, entity_id, kind: str) -> bool:
    """Queue a sync job; failures are logged and dropped, the next sweep catches up."""
    try:
        job = build_job(entity_type, entity_id, OPERATION_FOR_KIND.get(kind, UPDATE))
        process_sync_job_task.apply_async(args=(job,), queue=SYNC_QUEUES[entity_type])
    except Exception:
        logger.exception("Failed to queue %s sync job for id %s.", entity_type, entity_id)
        return False

    logger.info("Queued %s %s job for id %s.", entity_type, job['operation_type'], entity_id)
    return True


def enqueue_on_commit(entity_type: str, entity_id, kind: str):
    """
    Queue the job once the current transaction commits.

    A worker re-reads the entity, so it must not see the job before the
    change is visible. Outside a transaction the job is queued immediately;
    on rollback it is never queued.
    """
    transaction.on_commit(partial(enqueue_sync_job, entity_type, entity_id, kind))


@receiver(product_event)
def on_product_event(sender, kind, entity, **kwargs):
    enqueue_on_commit(PRODUCT, entity.pk, kind)


@receiver(product_variant_event)
def on_product_variant_event(sender, kind, entities, **kwargs):
    for variant in entities:
        enqueue_on_commit(VARIANT, variant.pk, kind)


@receiver(collection_event)
def on_collection_event(sender, kind, entity, **kwargs):
    enqueue_on_commit(COLLECTION, entity.pk, kind)
