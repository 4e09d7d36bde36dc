import os

from celery import Celery
from celery.schedules import crontab
from django.conf import settings

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('cms_sync')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


def _cron(expression: str) -> crontab:
    minute, hour, day_of_month, month_of_year, day_of_week = expression.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


@app.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
    if not settings.CMS_ENABLE_SCHEDULED_SYNC:
        return
    sender.add_periodic_task(
        _cron(settings.CMS_SCHEDULED_SYNC_CRON),
        sender.signature('cms_sync.full_sync_all'),
        name='cms-full-sync',
    )
