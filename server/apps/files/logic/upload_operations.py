"""Business logic for the two-phase upload protocol.

Phase one validates the request and hands out a presigned, key-scoped
write URL. It creates nothing: a client that never uploads leaves no
record and consumes no quota.

Phase two reconciles the upload against what is actually stored. It is
safe to retry: completing the same object key twice returns the same
record and charges the quota once. The unique (user, object key)
constraint on ``File`` is the lock that makes concurrent completions
resolve to a single winner.

The single-phase ``upload_file`` path proxies small files through the
application for clients that cannot use presigned URLs.
"""

import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.files.base import File as DjangoFile
from django.db import IntegrityError, transaction

from server.apps.files.exceptions import ObjectNotFoundError
from server.apps.files.infrastructure.metadata import (
    build_object_key,
    validate_display_name,
    validate_file_size,
    validate_file_type,
    validate_object_key,
)
from server.apps.files.infrastructure.storage import get_file_storage
from server.apps.files.logic.activity_operations import record_activity
from server.apps.files.logic.quota_operations import (
    check_capacity,
    commit_usage,
)
from server.apps.files.models import ActivityAction, File

# User type for Django's dynamic user model
_User = Any

_SECONDS_PER_MINUTE: Final = 60

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UploadCredential:
    """Delegated write access to a single new object."""

    write_url: str
    object_key: str
    expires_in_seconds: int
    content_type: str
    size_bytes: int


@dataclass(frozen=True, slots=True)
class UploadCompletion:
    """Outcome of completing an upload."""

    file: File
    created: bool


def _validate_new_upload(
    file_name: str,
    size_bytes: int,
    content_type: str,
    max_bytes: int,
) -> str:
    display_name = validate_display_name(file_name)
    validate_file_type(display_name, content_type)
    validate_file_size(size_bytes, max_bytes)
    return display_name


def request_upload_credential(
    user: _User,
    file_name: str,
    size_bytes: int,
    content_type: str,
) -> UploadCredential:
    """Validate an upload request and issue a presigned write URL.

    Validation order: name, extension and content type, size, quota.

    Args:
        user: Uploading user.
        file_name: Declared file name.
        size_bytes: Declared size in bytes.
        content_type: Declared MIME type.

    Returns:
        Credential with the write URL and the reserved object key.

    Raises:
        ValidationError: If name, type or size is invalid.
        QuotaExceededError: If the file does not fit in the quota.
        StorageUnavailableError: If the URL could not be signed.
    """
    display_name = _validate_new_upload(
        file_name,
        size_bytes,
        content_type,
        settings.DRIVE_STORAGE_CAPACITY_BYTES,
    )
    check_capacity(user, size_bytes)

    object_key = build_object_key(user.id, display_name)
    ttl_minutes = settings.DRIVE_UPLOAD_URL_TTL_MINUTES
    write_url = get_file_storage().generate_upload_url(
        object_key,
        content_type,
        ttl_minutes,
    )

    logger.info(
        'Issued upload credential for user %s: %s (%d bytes)',
        user.username,
        object_key,
        size_bytes,
    )
    return UploadCredential(
        write_url=write_url,
        object_key=object_key,
        expires_in_seconds=ttl_minutes * _SECONDS_PER_MINUTE,
        content_type=content_type,
        size_bytes=size_bytes,
    )


def complete_upload(
    user: _User,
    object_key: str,
    display_name: str,
) -> UploadCompletion:
    """Turn an uploaded object into a file record.

    Size and content type are read from the object store, never taken
    from the client.

    Args:
        user: Uploading user.
        object_key: Key returned by ``request_upload_credential``.
        display_name: Original file name shown to the user.

    Returns:
        The file record and whether this call created it.

    Raises:
        ValidationError: If the key or name is malformed.
        ObjectNotFoundError: If nothing was stored under the key, or the
            key belongs to another user.
        QuotaExceededError: If hard quota enforcement refuses the charge.
        StorageUnavailableError: If the object store cannot be queried.
    """
    display_name = validate_display_name(display_name)
    try:
        validate_object_key(user.id, object_key)
    except ValidationError as error:
        if error.code == 'foreign_namespace':
            raise ObjectNotFoundError(object_key) from error
        raise

    existing = File.objects.owned_by(user).filter(blob=object_key).first()
    if existing is not None:
        logger.info(
            'Duplicate completion for %s, returning file %d',
            object_key,
            existing.id,
        )
        return UploadCompletion(file=existing, created=False)

    properties = get_file_storage().get_object_properties(object_key)
    if properties is None:
        raise ObjectNotFoundError(object_key)

    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                user=user,
                blob=object_key,
                display_name=display_name,
                size_bytes=properties.size_bytes,
                mime_type=properties.content_type,
            )
            commit_usage(
                user,
                properties.size_bytes,
                enforce_ceiling=settings.DRIVE_ENFORCE_HARD_QUOTA,
            )
    except IntegrityError:
        # A concurrent completion of the same key won the insert
        existing = File.objects.owned_by(user).filter(blob=object_key).first()
        if existing is None:
            raise
        logger.info(
            'Concurrent completion for %s resolved to file %d',
            object_key,
            existing.id,
        )
        return UploadCompletion(file=existing, created=False)

    logger.info(
        'Upload completed: %s (ID: %d, size: %d)',
        object_key,
        file_instance.id,
        file_instance.size_bytes,
    )
    record_activity(user, file_instance, ActivityAction.UPLOAD)
    return UploadCompletion(file=file_instance, created=True)


def upload_file(
    user: _User,
    file_obj: BinaryIO | DjangoFile,
    file_name: str,
    content_type: str,
) -> File:
    """Upload file to storage and create database record.

    Transaction safety: Upload to storage first, then create DB record
    and charge the quota. If the DB transaction fails, the uploaded file
    is deleted from storage (rollback).

    Args:
        user: Owner of the file.
        file_obj: File-like object to upload.
        file_name: Original file name.
        content_type: Declared MIME type.

    Returns:
        Created File instance.

    Raises:
        ValidationError: If name, type or size is invalid.
        QuotaExceededError: If the file does not fit in the quota.
        Exception: If upload or DB operation fails.
    """
    file_size = _get_file_size(file_obj)
    display_name = _validate_new_upload(
        file_name,
        file_size,
        content_type,
        settings.DRIVE_DIRECT_UPLOAD_MAX_BYTES,
    )
    check_capacity(user, file_size)

    storage = get_file_storage()
    object_key = build_object_key(user.id, display_name)

    # Step 1: Upload to storage first
    saved_name = storage.save(object_key, file_obj)

    # Step 2: Create database record and charge quota (in transaction)
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                user=user,
                blob=saved_name,
                display_name=display_name,
                size_bytes=file_size,
                mime_type=content_type,
            )
            commit_usage(
                user,
                file_size,
                enforce_ceiling=settings.DRIVE_ENFORCE_HARD_QUOTA,
            )
    except Exception:
        # Rollback: Delete file from storage since DB transaction failed
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            saved_name,
        )
        storage.rollback_upload(saved_name)
        raise

    logger.info(
        'File record created in database: %s (ID: %d)',
        saved_name,
        file_instance.id,
    )
    record_activity(user, file_instance, ActivityAction.UPLOAD)
    return file_instance


def _get_file_size(file_obj: BinaryIO | DjangoFile) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size
