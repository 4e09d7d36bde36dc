import logging
from typing import Optional

from django.utils import timezone

from . import catalog, resolver
from .content_client import ContentApiClient
from .transformer import COLLECTION, PRODUCT, VARIANT, to_story, transform

logger = logging.getLogger(__name__)

CREATE = 'create'
UPDATE = 'update'
DELETE = 'delete'
OPERATIONS = (CREATE, UPDATE, DELETE)

SUCCESS = 'success'
SKIPPED = 'skipped'
FAILED = 'failed'
NOT_FOUND = 'not_found'


class EntityNotFound(Exception):
    """The entity no longer exists in the catalog."""


def build_job(entity_type: str, entity_id, operation_type: str, retry_count: int = 0) -> dict:
    """A sync job carries the entity id only; state is re-read when it runs."""
    if operation_type not in OPERATIONS:
        raise ValueError(f"Unknown operation type {operation_type!r}.")
    return {
        'entity_type': entity_type,
        'entity_id': str(entity_id),
        'operation_type': operation_type,
        'timestamp': timezone.now().isoformat(),
        'retry_count': retry_count,
    }


def _load(entity_type: str, model_name: str, entity_id):
    entity = catalog.find_by_id(entity_type, entity_id)
    if entity is None:
        raise EntityNotFound(f"{model_name} with ID {entity_id} not found")
    return entity


def _product_payload(client, job: dict, language_code: str) -> Optional[dict]:
    product = _load(PRODUCT, 'Product', job['entity_id'])
    refs = {}
    if job['operation_type'] != DELETE:
        slug = catalog.translation_slug(product, language_code)
        if slug:
            refs['variants'] = resolver.resolve_variants_of(client, slug, catalog.variant_ids(product))
    return transform(PRODUCT, catalog.snapshot(product), language_code, refs)


def _variant_payload(client, job: dict, language_code: str) -> Optional[dict]:
    variant = _load(VARIANT, 'ProductVariant', job['entity_id'])
    product_slug = catalog.translation_slug(variant.product, language_code)
    refs = {}
    if job['operation_type'] != DELETE:
        parent_id = resolver.resolve_parent_of(client, product_slug)
        refs['parentProduct'] = [parent_id] if parent_id else []
    return transform(
        VARIANT, catalog.snapshot(variant), language_code, refs,
        slug=resolver.variant_slug(product_slug, variant.pk),
    )


def _collection_payload(client, job: dict, language_code: str) -> Optional[dict]:
    collection = _load(COLLECTION, 'Collection', job['entity_id'])
    return transform(COLLECTION, catalog.snapshot(collection), language_code)


# entity type -> (label used in messages, payload builder)
HANDLERS = {
    PRODUCT: ('Product', _product_payload),
    VARIANT: ('Variant', _variant_payload),
    COLLECTION: ('Collection', _collection_payload),
}


def _outcome(status: str, message: str) -> dict:
    return {
        'success': status in (SUCCESS, SKIPPED),
        'status': status,
        'message': message,
        'timestamp': timezone.now().isoformat(),
    }


def _apply(client, operation: str, payload: dict) -> str:
    """
    Push the payload and return what was done: created, updated, deleted or unchanged.

    The entry is found by slug, falling back to `vendureId` so that an
    entity whose slug changed updates its old entry instead of leaving it
    behind.
    """
    existing = client.find_by_slug(payload['slug'])
    if existing is None:
        existing = client.find_by_vendure_id(payload['component'], payload['vendureId'])

    if operation == DELETE:
        if existing is None:
            return 'unchanged'
        client.delete_story(existing['id'])
        return 'deleted'

    if existing is None:
        client.create_story(to_story(payload))
        return 'created'

    client.update_story(existing['id'], to_story(payload))
    return 'updated'


def process_job(job: dict, client: Optional[ContentApiClient] = None) -> dict:
    """
    Run one sync job to a terminal outcome.

    Never raises; every failure is returned as an outcome with success=False.
    Retrying is left to the caller.
    """
    entity_type = job.get('entity_type')
    entity_id = job.get('entity_id')
    operation = job.get('operation_type')
    label, build_payload = HANDLERS.get(entity_type, (str(entity_type).title(), None))

    logger.info("Processing %s %s job for id %s.", label, operation, entity_id)

    try:
        if build_payload is None:
            raise ValueError(f"Unknown entity type {entity_type!r}.")
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation type {operation!r}.")

        client = client or ContentApiClient()
        language_code = catalog.get_default_language_code()

        payload = build_payload(client, job, language_code)
        if payload is None:
            return _outcome(
                SKIPPED,
                f"{label} {entity_id} has no {language_code!r} translation, skipped",
            )

        action = _apply(client, operation, payload)
        logger.info("%s %s %s in content space (slug=%s).", label, entity_id, action, payload['slug'])

    except EntityNotFound as exc:
        logger.warning("%s sync failed: %s", label, exc)
        return _outcome(NOT_FOUND, f"{label} sync failed: {exc}")
    except Exception as exc:
        logger.exception("%s sync failed for id %s.", label, entity_id)
        return _outcome(FAILED, f"{label} sync failed: {exc}")

    return _outcome(SUCCESS, f"{label} {operation} synced successfully")
