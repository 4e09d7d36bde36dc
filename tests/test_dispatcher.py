import logging

import pytest
from django.db import transaction

from cms_sync.dispatcher import enqueue_sync_job
from cms_sync.events import collection_event, product_variant_event
from cms_sync.models import Collection, Product, ProductTranslation


def _queued(enqueued):
    """(entity_type, entity_id, operation_type, queue) for every queued job."""
    result = []
    for call in enqueued.call_args_list:
        (job,) = call.kwargs['args']
        result.append((job['entity_type'], job['entity_id'], job['operation_type'], call.kwargs['queue']))
    return result


@pytest.fixture()
def committed(django_capture_on_commit_callbacks):
    """Run the on-commit callbacks registered inside the block when it exits."""
    return lambda: django_capture_on_commit_callbacks(execute=True)


@pytest.mark.django_db
class TestProductEvents:
    def test_created_product_queues_create_job(self, make_product, enqueued, committed):
        with committed():
            make_product(1)
        assert _queued(enqueued) == [('product', '1', 'create', 'cms-product-sync')]

    def test_job_has_no_data_snapshot(self, make_product, enqueued, committed):
        with committed():
            make_product(1)
        (job,) = enqueued.call_args.kwargs['args']
        assert set(job) == {'entity_type', 'entity_id', 'operation_type', 'timestamp', 'retry_count'}

    def test_updated_product_queues_update_job(self, make_product, enqueued, committed):
        product = make_product(1)

        with committed():
            product.enabled = False
            product.save()

        assert _queued(enqueued) == [('product', '1', 'update', 'cms-product-sync')]

    def test_soft_deleted_product_queues_delete_job(self, make_product, enqueued, committed):
        product = make_product(1)

        with committed():
            product.soft_delete()

        assert _queued(enqueued) == [('product', '1', 'delete', 'cms-product-sync')]

    def test_translation_change_queues_parent_update(self, make_product, enqueued, committed):
        product = make_product(1)

        with committed():
            ProductTranslation.objects.create(
                product=product, language_code='en', name='Laptop Computer', slug='laptop-computer',
            )

        assert _queued(enqueued) == [('product', '1', 'update', 'cms-product-sync')]


# ---------------------------------------------------------------------------
# Jobs leave only after the change is committed
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestQueueAfterCommit:
    def test_nothing_queued_before_commit(self, enqueued, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            with transaction.atomic():
                product = Product.objects.create(id=1)
                ProductTranslation.objects.create(
                    product=product, language_code='en', name='Laptop Computer', slug='laptop-computer',
                )
                assert enqueued.call_count == 0

        assert enqueued.call_count == 0
        assert len(callbacks) == 2

        for callback in callbacks:
            callback()
        assert _queued(enqueued) == [
            ('product', '1', 'create', 'cms-product-sync'),
            ('product', '1', 'update', 'cms-product-sync'),
        ]

    def test_rolled_back_change_is_never_queued(self, enqueued, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    Product.objects.create(id=1)
                    raise RuntimeError('rollback')

        assert callbacks == []
        assert enqueued.call_count == 0


@pytest.mark.django_db
class TestVariantEvents:
    def test_created_variant_queues_on_variant_queue(self, make_product, make_variant, enqueued, committed):
        product = make_product(1)

        with committed():
            make_variant(product, 5)

        assert _queued(enqueued) == [('variant', '5', 'create', 'cms-variant-sync')]

    def test_bulk_variant_event_queues_one_job_per_variant(self, make_product, make_variant, enqueued, committed):
        product = make_product(1)
        variants = [make_variant(product, variant_id) for variant_id in (5, 6, 7)]

        with committed():
            product_variant_event.send(sender=None, kind='updated', entities=variants)

        assert _queued(enqueued) == [
            ('variant', '5', 'update', 'cms-variant-sync'),
            ('variant', '6', 'update', 'cms-variant-sync'),
            ('variant', '7', 'update', 'cms-variant-sync'),
        ]


@pytest.mark.django_db
class TestCollectionEvents:
    def test_hard_deleted_collection_queues_delete_job(self, make_collection, enqueued, committed):
        collection = make_collection(999)

        with committed():
            collection.delete()

        assert _queued(enqueued) == [('collection', '999', 'delete', 'cms-collection-sync')]

    def test_manual_event(self, enqueued, committed):
        with committed():
            collection_event.send(sender=Collection, kind='updated', entity=Collection(id=3))
        assert _queued(enqueued) == [('collection', '3', 'update', 'cms-collection-sync')]


# ---------------------------------------------------------------------------
# Enqueue failures are dropped
# ---------------------------------------------------------------------------

class TestEnqueueFailure:
    def test_broker_error_logged_and_dropped(self, enqueued, caplog):
        enqueued.side_effect = ConnectionError('broker unreachable')

        with caplog.at_level(logging.ERROR, logger='cms_sync.dispatcher'):
            assert enqueue_sync_job('product', 1, 'updated') is False

        assert 'Failed to queue product sync job for id 1' in caplog.text

    @pytest.mark.django_db
    def test_model_save_survives_broker_error(self, make_product, enqueued, committed):
        enqueued.side_effect = ConnectionError('broker unreachable')
        with committed():
            product = make_product(1)
        assert product.pk == 1
        assert enqueued.call_count == 1

    def test_successful_enqueue_returns_true(self, enqueued):
        assert enqueue_sync_job('collection', 3, 'created') is True
        enqueued.assert_called_once()
