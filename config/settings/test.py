"""Test settings: in-memory SQLite and quiet logging."""

import os

from .base import *  # noqa: F401,F403

DEBUG = False

# In-memory SQLite unless DB_ENGINE points the suite at PostgreSQL, which the
# concurrent booking tests need.
if 'postgresql' not in os.environ.get('DB_ENGINE', ''):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

LOGGING['loggers']['apps']['level'] = 'WARNING'
LOGGING['loggers']['shared']['level'] = 'WARNING'
