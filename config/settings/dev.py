"""Development settings for venue project.

Extends the base settings with debug mode, open hosts, console email and
verbose logging for the booking apps. Do not use these settings in
production!
"""

from .base import *  # noqa: F401,F403
from .base import LOGGING

DEBUG = True

ALLOWED_HOSTS = ['*']

# Payment links and reminders are printed instead of sent
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

LOGGING['loggers']['apps']['level'] = 'DEBUG'
