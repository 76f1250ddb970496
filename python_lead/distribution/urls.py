"""
URL configuration for distribution app.
"""
from django.urls import path
from distribution.views import ProcessLeadQueueView

urlpatterns = [
    path('process-queue/', ProcessLeadQueueView.as_view(), name='process-lead-queue'),
]
