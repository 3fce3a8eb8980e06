"""Storage accounting and upload protocol settings."""

from typing import Final

from server.settings.components import config

# Per-account capacity ceiling, also the largest single upload: 5 GB
DRIVE_STORAGE_CAPACITY_BYTES: Final = config(
    'DRIVE_STORAGE_CAPACITY_BYTES',
    cast=int,
    default=5 * 1024 * 1024 * 1024,
)

# When enabled, upload completion refuses to push usage past the ceiling.
# Otherwise the phase-one capacity check is the only (advisory) limit.
DRIVE_ENFORCE_HARD_QUOTA: Final = config(
    'DRIVE_ENFORCE_HARD_QUOTA',
    cast=bool,
    default=False,
)

# Presigned URL lifetimes
DRIVE_UPLOAD_URL_TTL_MINUTES: Final = config(
    'DRIVE_UPLOAD_URL_TTL_MINUTES',
    cast=int,
    default=10,
)
DRIVE_DOWNLOAD_URL_TTL_MINUTES: Final = config(
    'DRIVE_DOWNLOAD_URL_TTL_MINUTES',
    cast=int,
    default=10,
)

# Legacy proxied uploads are bounded by the request body limit
DRIVE_DIRECT_UPLOAD_MAX_BYTES: Final = config(
    'DRIVE_DIRECT_UPLOAD_MAX_BYTES',
    cast=int,
    default=4718592,  # 4.5 MB
)

# Trash retention for the cleanup_trash command
DRIVE_TRASH_RETENTION_DAYS: Final = config(
    'DRIVE_TRASH_RETENTION_DAYS',
    cast=int,
    default=30,
)

# Listing and search
DRIVE_DEFAULT_PAGE_SIZE: Final = 20
DRIVE_MAX_PAGE_SIZE: Final = 100
DRIVE_SEARCH_LIMIT: Final = 8
DRIVE_ACTIVITY_FEED_LIMIT: Final = 100
