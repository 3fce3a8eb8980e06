"""Business logic for trash (soft delete) operations.

State changes are compare-and-set updates keyed on the current state, so
two racing transitions on the same file cannot both succeed.
"""

import logging
from typing import Any

from django.db import transaction
from django.utils import timezone

from server.apps.files.exceptions import (
    FileRecordNotFoundError,
    InvalidStateTransitionError,
    LedgerUnderflowError,
)
from server.apps.files.infrastructure.storage import get_file_storage
from server.apps.files.logic.activity_operations import record_activity
from server.apps.files.logic.file_operations import (
    get_file,
    raise_transition_error,
)
from server.apps.files.logic.quota_operations import (
    commit_usage,
    recalculate_usage,
)
from server.apps.files.models import ActivityAction, File

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def trash_file(user: _User, file_id: int) -> File:
    """Move file to trash (soft delete).

    Quota is NOT decremented - trashed files still occupy storage.

    Args:
        user: Owner of the file.
        file_id: ID of file to trash.

    Returns:
        Updated File instance.

    Raises:
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is already in the trash.
    """
    now = timezone.now()
    updated = File.objects.owned_by(user).active().filter(pk=file_id).update(
        trashed_at=now,
        modified_at=now,
    )
    if not updated:
        raise_transition_error(user, file_id, 'trash')

    file_instance = get_file(user, file_id)
    logger.info(
        'File moved to trash: %s (ID: %d)',
        file_instance.object_key,
        file_id,
    )
    record_activity(user, file_instance, ActivityAction.DELETE)
    return file_instance


def restore_file(user: _User, file_id: int) -> File:
    """Restore file from trash.

    Args:
        user: Owner of the file.
        file_id: ID of file to restore.

    Returns:
        Updated File instance.

    Raises:
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is not in the trash.
    """
    updated = File.objects.owned_by(user).trashed().filter(pk=file_id).update(
        trashed_at=None,
        modified_at=timezone.now(),
    )
    if not updated:
        raise_transition_error(user, file_id, 'restore')

    file_instance = get_file(user, file_id)
    logger.info(
        'File restored: %s (ID: %d)',
        file_instance.object_key,
        file_id,
    )
    record_activity(user, file_instance, ActivityAction.RESTORE)
    return file_instance


def purge_file(user: _User, file_id: int) -> None:
    """Permanently delete file from trash.

    Removes the object from storage, then the record, then releases its
    bytes from the quota. The row stays locked for the whole operation.
    If the object store fails, nothing is changed.

    Args:
        user: Owner of the file.
        file_id: ID of file to permanently delete.

    Raises:
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is not in the trash.
        StorageUnavailableError: If the object could not be deleted.
    """
    needs_reconcile = False

    with transaction.atomic():
        try:
            file_instance = File.objects.owned_by(user).select_for_update().get(
                pk=file_id,
            )
        except File.DoesNotExist as error:
            raise FileRecordNotFoundError(file_id) from error

        if not file_instance.is_trashed:
            raise InvalidStateTransitionError(file_id, 'purge', 'active')

        object_key = file_instance.object_key
        file_size = file_instance.size_bytes

        # Record goes only after the store confirms the object is gone
        get_file_storage().delete(object_key)
        file_instance.delete()

        try:
            commit_usage(user, -file_size)
        except LedgerUnderflowError:
            needs_reconcile = True

    if needs_reconcile:
        recalculate_usage(user)

    logger.info(
        'File permanently deleted: %s (ID: %d, size: %d)',
        object_key,
        file_id,
        file_size,
    )


def empty_trash(user: _User) -> int:
    """Permanently delete all files in user's trash.

    Args:
        user: User whose trash to empty.

    Returns:
        Number of files deleted.
    """
    trash_ids = list(
        File.objects.owned_by(user).trashed().values_list('id', flat=True),
    )
    count = 0

    for file_id in trash_ids:
        try:
            purge_file(user, file_id)
        except (FileRecordNotFoundError, InvalidStateTransitionError):
            # Purged or restored concurrently by another request
            continue
        except Exception:
            logger.exception(
                'Failed to permanently delete file: %d',
                file_id,
            )
            raise
        count += 1

    logger.info(
        'Trash emptied for user %s: %d files deleted',
        user.username,
        count,
    )

    return count
