"""
Tests for batch queue processing.
"""
import json
from datetime import timedelta
from unittest.mock import Mock, patch

import httpx
import pytest
from django.utils import timezone

from distribution.models import Lead, LeadDistribution, LeadQueueItem, RejectedLead
from distribution.services.adapters import DeliveryResult
from distribution.services.orchestrator import NO_ELIGIBLE_ADVERTISERS
from distribution.services.processor import BatchResult, clamp_batch_size, process_queue
from distribution.services.work_queue import LEAD_NOT_FOUND, enqueue, sweep_stale_processing


ACCEPTED = DeliveryResult(success=True, response=json.dumps({'lead_id': 'EXT-1'}), status_code=200)
REFUSED = DeliveryResult(success=False, response=json.dumps({'message': 'Duplicate lead'}), status_code=200)


class TestClampBatchSize:
    """Tests for batch size clamping."""

    def test_default_when_missing(self):
        assert clamp_batch_size() == 50
        assert clamp_batch_size(None) == 50

    def test_caps_at_maximum(self):
        assert clamp_batch_size(500) == 100

    def test_keeps_valid_size(self):
        assert clamp_batch_size(10) == 10

    def test_rejects_non_positive(self):
        assert clamp_batch_size(0) == 50
        assert clamp_batch_size(-3) == 50

    def test_rejects_non_integers(self):
        assert clamp_batch_size('20') == 50
        assert clamp_batch_size(2.5) == 50
        assert clamp_batch_size(True) == 50


@pytest.mark.django_db
class TestProcessQueue:
    """Tests for process_queue."""

    def test_empty_queue(self):
        result = process_queue()

        assert result == BatchResult()
        assert result.to_dict() == {'processed': 0, 'succeeded': 0, 'failed': 0, 'retried': 0}

    def test_successful_batch(self, make_advertiser, make_lead):
        make_advertiser('Alpha')
        items = [enqueue(make_lead()) for _ in range(3)]

        result = process_queue(registry={'mock': Mock(return_value=ACCEPTED)})

        assert result.to_dict() == {'processed': 3, 'succeeded': 3, 'failed': 0, 'retried': 0}
        for item in items:
            item.refresh_from_db()
            assert item.status == LeadQueueItem.Status.COMPLETED
        assert LeadDistribution.objects.count() == 3

    def test_batch_size_limits_claim(self, make_advertiser, make_lead):
        make_advertiser('Alpha')
        for _ in range(4):
            enqueue(make_lead())

        result = process_queue(batch_size=2, registry={'mock': Mock(return_value=ACCEPTED)})

        assert result.processed == 2
        assert LeadQueueItem.objects.filter(status=LeadQueueItem.Status.PENDING).count() == 2

    def test_caps_respected_within_a_batch(self, make_advertiser, make_lead):
        make_advertiser('Alpha', daily_cap=2)
        for _ in range(5):
            enqueue(make_lead())

        result = process_queue(registry={'mock': Mock(return_value=ACCEPTED)})

        assert result.succeeded == 2
        assert result.failed == 3
        assert LeadDistribution.objects.count() == 2
        failed = LeadQueueItem.objects.filter(status=LeadQueueItem.Status.FAILED)
        assert failed.count() == 3
        assert all(i.error_message == NO_ELIGIBLE_ADVERTISERS for i in failed)

    def test_no_eligible_fails_without_retry(self, make_lead):
        item = enqueue(make_lead())

        result = process_queue(registry={})

        assert result.failed == 1
        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.FAILED
        assert item.attempts == 1

    def test_explicit_rejections_fail_without_retry(self, make_advertiser, make_lead):
        make_advertiser('Alpha')
        make_advertiser('Beta')
        item = enqueue(make_lead())

        result = process_queue(registry={'mock': Mock(return_value=REFUSED)})

        assert result.failed == 1
        assert result.retried == 0
        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.FAILED
        assert RejectedLead.objects.filter(lead_id=item.lead_id).count() == 2

    def test_transient_failures_retry_at_most_max_attempts(self, make_advertiser, make_lead):
        make_advertiser('Flaky')
        lead = make_lead()
        item = enqueue(lead)
        adapter = Mock(side_effect=httpx.ConnectError('Connection refused'))
        registry = {'mock': adapter}

        first = process_queue(registry=registry)
        lead.refresh_from_db()
        # still queued for another attempt, so not rejected yet
        assert lead.status == Lead.Status.NEW

        second = process_queue(registry=registry)
        third = process_queue(registry=registry)
        fourth = process_queue(registry=registry)

        assert (first.retried, second.retried, third.failed) == (1, 1, 1)
        assert fourth.processed == 0
        assert adapter.call_count == 3

        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.FAILED
        assert item.attempts == 3
        assert 'Connection refused' in item.error_message
        lead.refresh_from_db()
        assert lead.status == Lead.Status.REJECTED

    def test_lead_not_found(self, make_lead):
        item = enqueue(make_lead())

        with patch.object(Lead.objects, 'in_bulk', return_value={}):
            result = process_queue()

        assert result.failed == 1
        assert result.processed == 0
        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.FAILED
        assert item.error_message == LEAD_NOT_FOUND

    @patch('distribution.services.processor.distribute_lead')
    def test_unexpected_error_is_retried(self, mock_distribute, make_lead):
        mock_distribute.side_effect = RuntimeError('database went away')
        item = enqueue(make_lead())

        result = process_queue()

        assert result.retried == 1
        item.refresh_from_db()
        assert item.status == LeadQueueItem.Status.PENDING
        assert item.attempts == 1
        assert 'database went away' in item.error_message

    @patch('distribution.services.processor.distribute_lead')
    def test_one_failing_lead_does_not_stop_the_batch(self, mock_distribute, make_advertiser, make_lead):
        success = Mock(success=True)
        mock_distribute.side_effect = [RuntimeError('boom'), success]
        first = enqueue(make_lead())
        second = enqueue(make_lead())

        result = process_queue()

        assert result.processed == 2
        assert result.succeeded == 1
        assert result.retried == 1
        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == LeadQueueItem.Status.PENDING
        assert second.status == LeadQueueItem.Status.COMPLETED


@pytest.mark.django_db
class TestProcessQueueLostClaims:
    """A batch that outlives the stale sweep must not deliver re-claimed leads."""

    def test_swept_and_reclaimed_lead_is_delivered_once(self, make_advertiser, make_lead):
        make_advertiser('Alpha')
        first_lead = make_lead()
        second_lead = make_lead()
        enqueue(first_lead)
        enqueue(second_lead)
        nested = {}

        def slow_accept(lead, advertiser):
            # The first delivery takes so long that the sweeper recovers the
            # batch and another processor claims and finishes it meanwhile
            if not nested:
                LeadQueueItem.objects.filter(status=LeadQueueItem.Status.PROCESSING).update(
                    claimed_at=timezone.now() - timedelta(hours=1)
                )
                sweep_stale_processing(older_than=timedelta(minutes=15))
                nested['result'] = process_queue(registry={'mock': Mock(return_value=ACCEPTED)})
            return ACCEPTED

        result = process_queue(registry={'mock': slow_accept})

        assert nested['result'].succeeded == 2
        assert result.processed == 1
        sent = LeadDistribution.objects.filter(lead=second_lead, status=LeadDistribution.Status.SENT)
        assert sent.count() == 1
        assert LeadQueueItem.objects.get(lead=second_lead).status == LeadQueueItem.Status.COMPLETED

    def test_claim_renewed_before_each_lead(self, make_advertiser, make_lead):
        make_advertiser('Alpha')
        items = [enqueue(make_lead()) for _ in range(2)]
        stale = timezone.now() - timedelta(hours=1)
        seen = []

        def accept_and_check(lead, advertiser):
            seen.append(LeadQueueItem.objects.get(lead=lead).claimed_at)
            LeadQueueItem.objects.filter(status=LeadQueueItem.Status.PROCESSING).update(claimed_at=stale)
            return ACCEPTED

        process_queue(registry={'mock': accept_and_check})

        assert len(seen) == 2
        assert all(claimed_at > stale for claimed_at in seen)
        for item in items:
            item.refresh_from_db()
            assert item.status == LeadQueueItem.Status.COMPLETED
