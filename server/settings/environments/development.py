"""This file contains all the settings that defines the development server.

SECURITY WARNING: don't run with debug turned on in production!
"""

from server.settings.components import config

DEBUG = True

SECRET_KEY = config(
    'DJANGO_SECRET_KEY',
    default='django-insecure-development-only-key',
)

ALLOWED_HOSTS = [
    config('DOMAIN_NAME', default='localhost'),
    'localhost',
    '127.0.0.1',
    'testserver',
]

# Speeds up user creation in local runs and the test suite
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]
