import logging
import time
from threading import Event, Lock
from typing import Optional

import requests
from django.conf import settings

from .transformer import CONTENT_TYPES, content_type_definition

logger = logging.getLogger(__name__)

RATE_LIMIT = 5  # requests per second
COMPONENT_SEARCH_PREFIX = 'vendure'


class ContentApiError(requests.HTTPError):
    """Non-2xx response from the content API."""

    def __init__(self, status: int, body: str, method: str = '', resource: str = ''):
        self.status = status
        self.body = body
        self.method = method
        self.resource = resource
        super().__init__(f"Content API error {status}: {body}")


class RateLimiter:
    """
    Minimum-interval rate limiter (thread-safe).

    Consecutive acquisitions are spaced at least `1 / rate` seconds apart,
    measured from the moment the previous caller was let through. The first
    call never waits.
    """

    def __init__(self, rate: float):
        self._interval = 1.0 / rate
        self._last_call = None
        self._lock = Lock()

    @property
    def interval(self) -> float:
        return self._interval

    def acquire(self):
        with self._lock:
            now = time.monotonic()
            if self._last_call is not None:
                wait = self._interval - (now - self._last_call)
                if wait > 0:
                    time.sleep(wait)
            self._last_call = time.monotonic()


class ReadinessGate:
    """
    Process-wide barrier opened once the content types exist remotely.

    Every caller waits on the same event, so a cold start with many queued
    jobs does not turn into many independent polling loops. The wait is
    paid once: after it has expired, later callers go ahead without waiting
    until the gate is opened or reset.
    """

    def __init__(self):
        self._event = Event()
        self._expired = False

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    @property
    def has_expired(self) -> bool:
        return self._expired and not self.is_ready

    def mark_ready(self):
        self._event.set()

    def reset(self):
        self._event.clear()
        self._expired = False

    def wait(self, timeout: float) -> bool:
        if self._event.is_set():
            return True
        if self._expired:
            return False
        if self._event.wait(timeout):
            return True
        if not self._expired:
            self._expired = True
            logger.error(
                "Content types were not initialized within %.1fs – proceeding without them.",
                timeout,
            )
        return False


readiness_gate = ReadinessGate()

_shared_rate_limiter = None
_shared_rate_limiter_lock = Lock()


def shared_rate_limiter() -> RateLimiter:
    """Return the limiter shared by every client in this process."""
    global _shared_rate_limiter
    with _shared_rate_limiter_lock:
        if _shared_rate_limiter is None:
            _shared_rate_limiter = RateLimiter(getattr(settings, 'CMS_RATE_LIMIT', RATE_LIMIT))
        return _shared_rate_limiter


class ContentApiClient:
    def __init__(self, rate_limiter: Optional[RateLimiter] = None, gate: Optional[ReadinessGate] = None):
        self._base_url = f"{settings.CMS_API_BASE_URL.rstrip('/')}/spaces/{settings.CMS_SPACE_ID}"
        self._session = requests.Session()
        self._session.headers.update({
            'Authorization': settings.CMS_API_KEY,
            'Content-Type': 'application/json',
        })
        self._rate_limiter = rate_limiter or shared_rate_limiter()
        self._gate = gate or readiness_gate

    def request(self, method: str, resource: str, body: Optional[dict] = None,
                params: Optional[dict] = None, skip_initialization: bool = False) -> dict:
        """Issue one call against `{base}/spaces/{space}/{resource}` and return the decoded body."""
        if not skip_initialization:
            self._gate.wait(settings.CMS_INITIALIZATION_TIMEOUT)

        url = f"{self._base_url}/{resource.lstrip('/')}"
        self._rate_limiter.acquire()
        logger.debug("%s %s params=%s", method, url, params)
        response = self._session.request(method, url, json=body, params=params)

        if not response.ok:
            logger.error(
                "Content API error: %s %s -> %d %s",
                method, resource, response.status_code, response.text,
            )
            raise ContentApiError(response.status_code, response.text, method, resource)

        if method == 'DELETE' or not response.content:
            return {}
        return response.json()

    # -- stories ---------------------------------------------------------

    def find_by_slugs(self, slugs: list[str]) -> list[dict]:
        """Batched lookup; returns whatever stories exist for the given slugs."""
        if not slugs:
            return []
        data = self.request('GET', 'stories', params={'by_slugs': ','.join(slugs)})
        return data.get('stories') or []

    def find_by_slug(self, slug: str) -> Optional[dict]:
        for story in self.find_by_slugs([slug]):
            if story.get('slug') == slug:
                return story
        return None

    def find_by_vendure_id(self, component: str, vendure_id) -> Optional[dict]:
        """Entry of the given content type whose `vendureId` field matches, or None."""
        data = self.request('GET', 'stories', params={
            'contain_component': component,
            'filter_query[vendureId][in]': str(vendure_id),
        })
        stories = data.get('stories') or []
        return stories[0] if stories else None

    def search_by_name(self, name: str) -> list[dict]:
        data = self.request('GET', 'stories', params={'search': name})
        return data.get('stories') or []

    def create_story(self, story_body: dict) -> dict:
        return self.request('POST', 'stories', body=story_body).get('story') or {}

    def update_story(self, story_id, story_body: dict) -> dict:
        return self.request('PUT', f'stories/{story_id}', body=story_body).get('story') or {}

    def delete_story(self, story_id) -> dict:
        return self.request('DELETE', f'stories/{story_id}')

    # -- content types ---------------------------------------------------

    def ensure_content_types(self) -> list[str]:
        """
        Create any missing content type, then open the readiness gate.

        Returns the names of the components that had to be created. If the
        API call fails the gate stays closed and the error propagates.
        """
        data = self.request(
            'GET', 'components',
            params={'search': COMPONENT_SEARCH_PREFIX},
            skip_initialization=True,
        )
        existing = {c.get('name') for c in data.get('components') or []}

        created = []
        for entity_type, component in CONTENT_TYPES.items():
            if component in existing:
                continue
            logger.info("Creating content type %s.", component)
            response = self.request(
                'POST', 'components',
                body=content_type_definition(entity_type),
                skip_initialization=True,
            )
            logger.info(
                "Created %s block with ID %s.",
                component, (response.get('component') or {}).get('id'),
            )
            created.append(component)

        self._gate.mark_ready()
        logger.info("Content types ready (created: %s).", ', '.join(created) or 'none')
        return created
