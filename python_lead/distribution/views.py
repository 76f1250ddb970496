"""
API views for Lead Router Service.
"""
import logging
import uuid
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from distribution.services.processor import clamp_batch_size, process_queue

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name='dispatch')
class ProcessLeadQueueView(APIView):
    """
    Trigger endpoint for the lead queue processor.

    POST /distribution/process-queue/
    - Optional JSON body: {"batch_size": int, "health_check": bool}
    - health_check returns a liveness response without touching the queue
    - Otherwise processes one batch and returns its counters
    """

    def post(self, request):
        """
        Handle a processing trigger.

        Returns:
            200 OK: Batch processed (or health check answered)
            500 Internal Server Error: Unexpected error
        """
        correlation_id = str(uuid.uuid4())

        try:
            try:
                body = request.data if isinstance(request.data, dict) else {}
            except (ParseError, UnsupportedMediaType):
                # A missing or invalid body just means default settings
                body = {}

            if body.get('health_check') is True:
                return Response(
                    {'status': 'ok', 'function': 'process-lead-queue'},
                    status=status.HTTP_200_OK
                )

            batch_size = clamp_batch_size(body.get('batch_size'))
            logger.info(
                f"Queue processing triggered, batch_size={batch_size}, "
                f"correlation_id={correlation_id}"
            )

            result = process_queue(batch_size)

            return Response(
                {
                    'success': True,
                    **result.to_dict(),
                    'correlation_id': correlation_id
                },
                status=status.HTTP_200_OK
            )

        except Exception as e:
            logger.error(
                f"Queue processor error: {e}, "
                f"correlation_id={correlation_id}",
                exc_info=True
            )
            return Response(
                {
                    'success': False,
                    'error': 'Internal server error',
                    'correlation_id': correlation_id
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
