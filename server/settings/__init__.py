"""Django settings for the drive project.

Settings are split into components and environments with
django-split-settings. The active environment is selected by ``DJANGO_ENV``
(``development`` by default).
"""

from os import environ

from split_settings.tools import include, optional

_ENV = environ.setdefault('DJANGO_ENV', 'development')

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/drive.py',

    # Select the right environment:
    f'environments/{_ENV}.py',

    # Optionally override some settings:
    optional('environments/local.py'),
)

include(*_base_settings)
