import logging
from typing import Optional

logger = logging.getLogger(__name__)

PRODUCT = 'product'
VARIANT = 'variant'
COLLECTION = 'collection'

CONTENT_TYPES = {
    PRODUCT: 'vendure_product',
    VARIANT: 'vendure_product_variant',
    COLLECTION: 'vendure_collection',
}

DISPLAY_NAMES = {
    PRODUCT: 'Vendure Product',
    VARIANT: 'Vendure Product Variant',
    COLLECTION: 'Vendure Collection',
}

# Relationship field carried by each content type; collections have none.
RELATIONSHIP_FIELDS = {
    PRODUCT: 'variants',
    VARIANT: 'parentProduct',
}


def default_translation(translations: list[dict], language_code: str) -> Optional[dict]:
    """Return the translation for `language_code`, or None."""
    for translation in translations or []:
        if translation.get('language_code') == language_code:
            return translation
    return None


def transform(entity_type: str, entity: dict, default_language_code: str,
              relationship_refs: Optional[dict] = None, slug: Optional[str] = None) -> Optional[dict]:
    """
    Transform a commerce entity snapshot into the content payload.

    `entity` is `{'id': ..., 'translations': [...]}`. Variants carry no stored
    slug, so the caller passes one in. Returns None (and logs a warning) if
    the entity has no translation in the default language.
    """
    entity_id = entity.get('id', '<unknown>')

    translation = default_translation(entity.get('translations'), default_language_code)
    if translation is None:
        logger.warning(
            "Skipping %s %s – no translation for default language %r.",
            entity_type, entity_id, default_language_code,
        )
        return None

    payload = {
        'component': CONTENT_TYPES[entity_type],
        'vendureId': str(entity_id),
        'name': translation.get('name') or '',
        'slug': slug if slug is not None else translation.get('slug') or '',
    }

    field = RELATIONSHIP_FIELDS.get(entity_type)
    if field is not None:
        refs = (relationship_refs or {}).get(field) or []
        payload[field] = list(refs)

    return payload


def to_story(payload: dict) -> dict:
    """Wrap a payload in the story envelope expected by the stories endpoints."""
    content = {
        key: value for key, value in payload.items()
        if key not in ('name', 'slug')
    }
    return {
        'story': {
            'name': payload['name'],
            'slug': payload['slug'],
            'content': content,
        },
        'publish': 1,
    }


def content_type_definition(entity_type: str) -> dict:
    """Body for creating the content type that stores `entity_type` entries."""
    schema = {
        'vendureId': {'type': 'text', 'pos': 0, 'required': True},
    }
    if entity_type == PRODUCT:
        schema['variants'] = {
            'type': 'options',
            'pos': 1,
            'source': 'internal_stories',
            'filter_content_type': [CONTENT_TYPES[VARIANT]],
        }
    elif entity_type == VARIANT:
        schema['parentProduct'] = {
            'type': 'options',
            'pos': 1,
            'source': 'internal_stories',
            'filter_content_type': [CONTENT_TYPES[PRODUCT]],
            'max_options': '1',
        }

    return {
        'component': {
            'name': CONTENT_TYPES[entity_type],
            'display_name': DISPLAY_NAMES[entity_type],
            'schema': schema,
            'is_root': False,
            'is_nestable': True,
        },
    }
