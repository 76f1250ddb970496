"""
URL configuration for lead_router project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('distribution/', include('distribution.urls')),
]
