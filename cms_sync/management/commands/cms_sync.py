import json

import requests
from django.core.management.base import BaseCommand, CommandError

from cms_sync import trigger
from cms_sync.content_client import ContentApiClient
from cms_sync.transformer import CONTENT_TYPES


class Command(BaseCommand):
    help = "Sync one entity, or every entity of a kind, to the content space."

    def add_arguments(self, parser):
        parser.add_argument('entity_type', choices=sorted(CONTENT_TYPES))
        parser.add_argument('--id', dest='entity_id', help="Sync only this entity.")

    def handle(self, *args, entity_type, entity_id=None, **options):
        try:
            ContentApiClient().ensure_content_types()
        except requests.RequestException as exc:
            raise CommandError(f"Could not initialize content types: {exc}") from exc

        if entity_id is not None:
            result = trigger.sync_entity(entity_type, entity_id)
        else:
            result = trigger.sync_all(entity_type)

        self.stdout.write(json.dumps(result, indent=2, ensure_ascii=False))
        if not result['success']:
            raise CommandError(result['message'])
