"""URL configuration for the RentalHub notification service.

Only the Django admin is exposed; jobs, inbox entries and templates are
managed there.
"""
from django.contrib import admin  # type: ignore
from django.urls import path  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
]
