from django.apps import AppConfig


class CmsSyncConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cms_sync'

    def ready(self):
        # Connect the model-change bridge and the queueing receivers.
        from . import dispatcher, events  # noqa: F401
