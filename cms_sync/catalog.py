"""Read-only access to the authoritative commerce entities."""
from typing import Optional

from django.conf import settings

from .models import Collection, Product, ProductVariant
from .transformer import COLLECTION, PRODUCT, VARIANT

ENTITY_MODELS = {
    PRODUCT: Product,
    VARIANT: ProductVariant,
    COLLECTION: Collection,
}


def get_default_language_code() -> str:
    return settings.CMS_DEFAULT_LANGUAGE_CODE


def _queryset(entity_type: str):
    model = ENTITY_MODELS[entity_type]
    qs = model.objects.prefetch_related('translations')
    if entity_type == VARIANT:
        qs = qs.select_related('product').prefetch_related('product__translations')
    elif entity_type == PRODUCT:
        qs = qs.prefetch_related('variants')
    return qs


def find_by_id(entity_type: str, entity_id):
    """Fetch one entity with its translations, soft-deleted rows included. None if absent."""
    try:
        return _queryset(entity_type).filter(pk=entity_id).first()
    except (TypeError, ValueError):
        return None


def list_entities(entity_type: str):
    """All entities of a kind with their translations, ordered by id."""
    return _queryset(entity_type).order_by('id')


def is_deleted(entity) -> bool:
    return getattr(entity, 'deleted_at', None) is not None


def snapshot(entity) -> dict:
    """Plain-data view of an entity for the transformer."""
    translations = []
    for t in entity.translations.all():
        row = {'language_code': t.language_code, 'name': t.name}
        if hasattr(t, 'slug'):
            row['slug'] = t.slug
        if hasattr(t, 'description'):
            row['description'] = t.description
        translations.append(row)
    return {'id': entity.pk, 'translations': translations}


def translation_slug(entity, language_code: str) -> Optional[str]:
    for t in entity.translations.all():
        if t.language_code == language_code:
            return t.slug or None
    return None


def variant_ids(product) -> list:
    """Ids of the product's live variants."""
    return sorted(v.pk for v in product.variants.all() if v.deleted_at is None)
