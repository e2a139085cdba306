"""Development settings for the RentalHub notification service.

Extends the base settings with debug mode and the console email backend,
so the SMTP fallback prints messages instead of sending them. Do not use
these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Use console email backend during development
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
