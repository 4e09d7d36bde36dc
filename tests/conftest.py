import json
import re
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest
import responses as responses_lib

from cms_sync import content_client
from cms_sync.content_client import RateLimiter, readiness_gate
from cms_sync.models import (
    Collection,
    CollectionTranslation,
    Product,
    ProductTranslation,
    ProductVariant,
    ProductVariantTranslation,
)

BASE_URL = 'https://mapi.fake-cms.test/v1'
SPACE_ID = '286724'
SPACE_URL = f'{BASE_URL}/spaces/{SPACE_ID}'
API_KEY = 'cms-secret-token'


@pytest.fixture(autouse=True)
def override_settings(settings):
    settings.CMS_API_BASE_URL = BASE_URL
    settings.CMS_SPACE_ID = SPACE_ID
    settings.CMS_API_KEY = API_KEY
    settings.CMS_DEFAULT_LANGUAGE_CODE = 'en'
    settings.CMS_INITIALIZATION_TIMEOUT = 1
    settings.CMS_RATE_LIMIT = 1000


@pytest.fixture(autouse=True)
def fast_rate_limiter(monkeypatch):
    monkeypatch.setattr(content_client, '_shared_rate_limiter', RateLimiter(rate=1000))


@pytest.fixture(autouse=True)
def content_types_ready():
    readiness_gate.mark_ready()
    yield
    readiness_gate.mark_ready()


@pytest.fixture(autouse=True)
def enqueued():
    """Catches every job the dispatcher would send to the broker."""
    with patch('cms_sync.dispatcher.process_sync_job_task.apply_async') as apply_async:
        yield apply_async


# ---------------------------------------------------------------------------
# Fake content space
# ---------------------------------------------------------------------------

class FakeContentSpace:
    """In-memory stand-in for the stories and components endpoints."""

    def __init__(self):
        self.stories = {}
        self.components = []
        self._next_id = 1001

    def register(self, rsps):
        stories_url = re.compile(re.escape(f'{SPACE_URL}/stories') + r'(\?.*)?$')
        story_url = re.compile(re.escape(f'{SPACE_URL}/stories/') + r'\d+$')
        components_url = re.compile(re.escape(f'{SPACE_URL}/components') + r'(\?.*)?$')

        rsps.add_callback(responses_lib.GET, stories_url, callback=self._list_stories)
        rsps.add_callback(responses_lib.POST, stories_url, callback=self._create_story)
        rsps.add_callback(responses_lib.PUT, story_url, callback=self._update_story)
        rsps.add_callback(responses_lib.DELETE, story_url, callback=self._delete_story)
        rsps.add_callback(responses_lib.GET, components_url, callback=self._list_components)
        rsps.add_callback(responses_lib.POST, components_url, callback=self._create_component)

    def by_slug(self, slug):
        for story in self.stories.values():
            if story['slug'] == slug:
                return story
        return None

    @staticmethod
    def _story_id(request):
        return int(urlsplit(request.url).path.rsplit('/', 1)[1])

    def _list_stories(self, request):
        query = parse_qs(urlsplit(request.url).query)
        stories = list(self.stories.values())
        if 'by_slugs' in query:
            slugs = query['by_slugs'][0].split(',')
            stories = [s for s in stories if s['slug'] in slugs]
        if 'contain_component' in query:
            component = query['contain_component'][0]
            stories = [s for s in stories if s['content'].get('component') == component]
        if 'filter_query[vendureId][in]' in query:
            ids = query['filter_query[vendureId][in]'][0].split(',')
            stories = [s for s in stories if s['content'].get('vendureId') in ids]
        if 'search' in query:
            term = query['search'][0].lower()
            stories = [s for s in stories if term in s['name'].lower()]
        return 200, {}, json.dumps({'stories': stories})

    def _create_story(self, request):
        story = dict(json.loads(request.body)['story'], id=self._next_id)
        self._next_id += 1
        self.stories[story['id']] = story
        return 201, {}, json.dumps({'story': story})

    def _update_story(self, request):
        story_id = self._story_id(request)
        if story_id not in self.stories:
            return 404, {}, json.dumps({'error': 'This record could not be found'})
        story = dict(json.loads(request.body)['story'], id=story_id)
        self.stories[story_id] = story
        return 200, {}, json.dumps({'story': story})

    def _delete_story(self, request):
        self.stories.pop(self._story_id(request), None)
        return 200, {}, ''

    def _list_components(self, request):
        return 200, {}, json.dumps({'components': self.components})

    def _create_component(self, request):
        component = dict(json.loads(request.body)['component'], id=len(self.components) + 1)
        self.components.append(component)
        return 201, {}, json.dumps({'component': component})


@pytest.fixture()
def content_space():
    space = FakeContentSpace()
    with responses_lib.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        space.register(rsps)
        space.calls = rsps.calls
        yield space


# ---------------------------------------------------------------------------
# Catalog factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_product(db):
    def _make(product_id=None, translations=None, **fields):
        product = Product.objects.create(id=product_id, **fields)
        for language_code, (name, slug) in (translations or {}).items():
            ProductTranslation.objects.create(
                product=product, language_code=language_code, name=name, slug=slug,
            )
        return product
    return _make


@pytest.fixture()
def make_variant(db):
    def _make(product, variant_id=None, translations=None, sku='SKU-001'):
        variant = ProductVariant.objects.create(id=variant_id, product=product, sku=sku)
        for language_code, name in (translations or {}).items():
            ProductVariantTranslation.objects.create(
                variant=variant, language_code=language_code, name=name,
            )
        return variant
    return _make


@pytest.fixture()
def make_collection(db):
    def _make(collection_id=None, translations=None):
        collection = Collection.objects.create(id=collection_id)
        for language_code, (name, slug) in (translations or {}).items():
            CollectionTranslation.objects.create(
                collection=collection, language_code=language_code, name=name, slug=slug,
            )
        return collection
    return _make
