"""
Unit tests for Celery tasks.
"""
import pytest
from datetime import timedelta
from unittest.mock import patch

from django.utils import timezone

from distribution.models import LeadQueueItem
from distribution.services.processor import BatchResult
from distribution.services.work_queue import dequeue_batch, enqueue
from distribution.tasks import process_lead_queue, sweep_stale_queue_items


class TestProcessLeadQueueTask:
    """Tests for the periodic processing task."""

    @patch('distribution.tasks.process_queue')
    def test_returns_batch_counters(self, mock_process):
        mock_process.return_value = BatchResult(processed=4, succeeded=3, failed=1)

        result = process_lead_queue(batch_size=10)

        mock_process.assert_called_once_with(10)
        assert result == {'processed': 4, 'succeeded': 3, 'failed': 1, 'retried': 0}

    @patch('distribution.tasks.process_queue')
    def test_default_batch_size(self, mock_process):
        mock_process.return_value = BatchResult()

        process_lead_queue()

        mock_process.assert_called_once_with(None)


@pytest.mark.django_db
class TestProcessLeadQueueTaskApply:
    """Runs the task locally through Celery."""

    def test_apply_distributes_queued_leads(self, make_advertiser, make_lead):
        make_advertiser('Mock Advertiser')
        item = enqueue(make_lead())

        async_result = process_lead_queue.apply()

        assert async_result.get()['succeeded'] == 1
        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.COMPLETED


@pytest.mark.django_db
class TestSweepStaleQueueItemsTask:
    """Tests for the stale claim sweeper task."""

    def test_recovers_stale_items(self, make_lead):
        enqueue(make_lead())
        [item] = dequeue_batch(1)
        LeadQueueItem.objects.filter(pk=item.pk).update(claimed_at=timezone.now() - timedelta(hours=2))

        assert sweep_stale_queue_items() == 1

        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.PENDING

    def test_nothing_to_recover(self):
        assert sweep_stale_queue_items() == 0


class TestBeatSchedule:
    """Timer triggers registered on the Celery app."""

    def test_periodic_tasks_scheduled(self):
        from lead_router.celery import app

        tasks = {entry['task'] for entry in app.conf.beat_schedule.values()}

        assert tasks == {
            'distribution.tasks.process_lead_queue',
            'distribution.tasks.sweep_stale_queue_items',
        }
