from dj_database_url import parse as db_url

from .base import *


SECRET_KEY = "test"  # nosec

DATABASES = {
    "default": db_url("sqlite://:memory:"),
}

STATIC_ROOT = base_dir_join("staticfiles")
STATIC_URL = "/static/"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Speed up password hashing
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

RECURRENCE_MAX_OCCURRENCES = 52
RECURRENCE_WEEKLY_SAFETY_CEILING = 200
