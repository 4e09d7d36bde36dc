"""
Relationship lookups between content entries.

The content system has no foreign keys back into the catalog, so a link is
found by deriving the slug the counterpart would have and asking the API
for it. A counterpart that was never synced (or was deleted) resolves to an
empty result; the link appears once both sides have been synced.
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

VARIANT_SLUG_SUFFIX = '-variant-'


def variant_slug(product_slug: Optional[str], variant_id) -> str:
    if product_slug:
        return f"{product_slug}{VARIANT_SLUG_SUFFIX}{variant_id}"
    return f"variant-{variant_id}"


def resolve_variants_of(client, product_slug: Optional[str], variant_ids) -> list[str]:
    """External ids of the product's variants that already exist, in `variant_ids` order."""
    slugs = [variant_slug(product_slug, variant_id) for variant_id in variant_ids]
    if not slugs:
        return []

    by_slug = {story.get('slug'): story for story in client.find_by_slugs(slugs)}
    found = [str(by_slug[slug]['id']) for slug in slugs if slug in by_slug]
    if len(found) < len(slugs):
        logger.debug(
            "Product %s: %d of %d variants not in the content space yet.",
            product_slug, len(slugs) - len(found), len(slugs),
        )
    return found


def resolve_parent_of(client, product_slug: Optional[str]) -> Optional[str]:
    """External id of the parent product entry, or None if it does not exist yet."""
    if not product_slug:
        return None
    story = client.find_by_slug(product_slug)
    if story is None:
        logger.debug("Parent product %s not in the content space yet.", product_slug)
        return None
    return str(story['id'])
