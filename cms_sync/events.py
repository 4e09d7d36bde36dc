"""
Change notifications for catalog entities.

Receivers get `kind` ('created', 'updated' or 'deleted') and either `entity`
(products, collections) or `entities` (variants, which may change in bulk).
Model saves and deletes are translated into these signals below.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from .models import (
    Collection,
    CollectionTranslation,
    Product,
    ProductTranslation,
    ProductVariant,
    ProductVariantTranslation,
)

CREATED = 'created'
UPDATED = 'updated'
DELETED = 'deleted'

product_event = Signal()
product_variant_event = Signal()
collection_event = Signal()


def _kind(instance, created):
    if getattr(instance, 'deleted_at', None) is not None:
        return DELETED
    return CREATED if created else UPDATED


@receiver(post_save, sender=Product)
def _product_saved(sender, instance, created, **kwargs):
    product_event.send(sender=Product, kind=_kind(instance, created), entity=instance)


@receiver(post_delete, sender=Product)
def _product_deleted(sender, instance, **kwargs):
    product_event.send(sender=Product, kind=DELETED, entity=instance)


@receiver(post_save, sender=ProductVariant)
def _variant_saved(sender, instance, created, **kwargs):
    product_variant_event.send(sender=ProductVariant, kind=_kind(instance, created), entities=[instance])


@receiver(post_delete, sender=ProductVariant)
def _variant_deleted(sender, instance, **kwargs):
    product_variant_event.send(sender=ProductVariant, kind=DELETED, entities=[instance])


@receiver(post_save, sender=Collection)
def _collection_saved(sender, instance, created, **kwargs):
    collection_event.send(sender=Collection, kind=_kind(instance, created), entity=instance)


@receiver(post_delete, sender=Collection)
def _collection_deleted(sender, instance, **kwargs):
    collection_event.send(sender=Collection, kind=DELETED, entity=instance)


@receiver(post_save, sender=ProductTranslation)
def _product_translation_saved(sender, instance, **kwargs):
    product_event.send(sender=Product, kind=UPDATED, entity=instance.product)


@receiver(post_save, sender=ProductVariantTranslation)
def _variant_translation_saved(sender, instance, **kwargs):
    product_variant_event.send(sender=ProductVariant, kind=UPDATED, entities=[instance.variant])


@receiver(post_save, sender=CollectionTranslation)
def _collection_translation_saved(sender, instance, **kwargs):
    collection_event.send(sender=Collection, kind=UPDATED, entity=instance.collection)
