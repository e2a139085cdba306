"""WSGI config for the RentalHub notification service.

Serves the Django admin; the notification worker itself runs through the
``run_notification_worker`` management command or Celery beat.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
