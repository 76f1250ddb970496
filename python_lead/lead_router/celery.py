"""
Celery configuration for Lead Router Service.
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lead_router.settings')

app = Celery('lead_router')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Timer triggers for the queue processor and the stale-claim sweeper
app.conf.beat_schedule = {
    'process-lead-queue': {
        'task': 'distribution.tasks.process_lead_queue',
        'schedule': float(os.getenv('QUEUE_PROCESS_INTERVAL_SECONDS', '60')),
    },
    'sweep-stale-queue-items': {
        'task': 'distribution.tasks.sweep_stale_queue_items',
        'schedule': 300.0,
    },
}
