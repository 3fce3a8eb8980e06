"""Business logic for file operations on active files.

Every lookup is scoped to the calling user. A file that belongs to
someone else is reported exactly like a file that does not exist.
"""

import logging
from typing import Any, NoReturn

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from server.apps.files.exceptions import (
    FileRecordNotFoundError,
    InvalidStateTransitionError,
)
from server.apps.files.infrastructure.metadata import validate_display_name
from server.apps.files.infrastructure.storage import get_file_storage
from server.apps.files.logic.activity_operations import record_activity
from server.apps.files.models import ActivityAction, File

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def describe_state(file_instance: File) -> str:
    """Name the lifecycle state of a file.

    Args:
        file_instance: File to describe.

    Returns:
        'trashed' or 'active'.
    """
    return 'trashed' if file_instance.is_trashed else 'active'


def get_file(user: _User, file_id: int) -> File:
    """Get a file owned by the user, in any state.

    Args:
        user: Owner of the file.
        file_id: ID of the file.

    Returns:
        File instance.

    Raises:
        FileRecordNotFoundError: If file not found or not owned by user.
    """
    try:
        return File.objects.owned_by(user).get(pk=file_id)
    except File.DoesNotExist as error:
        raise FileRecordNotFoundError(file_id) from error


def raise_transition_error(
    user: _User,
    file_id: int,
    transition: str,
) -> NoReturn:
    """Explain why a conditional state update matched no row.

    Args:
        user: Caller.
        file_id: ID of the file.
        transition: Name of the attempted transition.

    Raises:
        FileRecordNotFoundError: If the file is missing or not owned.
        InvalidStateTransitionError: If the file is in the wrong state.
    """
    file_instance = get_file(user, file_id)
    raise InvalidStateTransitionError(
        file_id,
        transition,
        describe_state(file_instance),
    )


def _lock_active_file(user: _User, file_id: int, transition: str) -> File:
    try:
        file_instance = File.objects.owned_by(user).select_for_update().get(
            pk=file_id,
        )
    except File.DoesNotExist as error:
        raise FileRecordNotFoundError(file_id) from error

    if file_instance.is_trashed:
        raise InvalidStateTransitionError(file_id, transition, 'trashed')
    return file_instance


def rename_file(user: _User, file_id: int, new_name: str) -> File:
    """Change the display name of an active file.

    The stored object keeps its key; only the visible name changes.

    Args:
        user: Owner of the file.
        file_id: ID of file to rename.
        new_name: New display name.

    Returns:
        Updated File instance.

    Raises:
        ValidationError: If the name is invalid.
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is in the trash.
    """
    return update_file(user, file_id, display_name=new_name)


def set_starred(user: _User, file_id: int, starred: bool) -> File:
    """Star or unstar an active file.

    Args:
        user: Owner of the file.
        file_id: ID of the file.
        starred: New flag value, must be a real boolean.

    Returns:
        Updated File instance.

    Raises:
        ValidationError: If ``starred`` is not a boolean.
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is in the trash.
    """
    _validate_starred(starred)
    return update_file(user, file_id, starred=starred)


def _validate_starred(starred: object) -> None:
    if not isinstance(starred, bool):
        raise ValidationError('Starred flag must be a boolean')


def update_file(
    user: _User,
    file_id: int,
    *,
    starred: bool | None = None,
    display_name: str | None = None,
) -> File:
    """Apply a partial update to an active file.

    Every given field is validated before anything is written, and all
    of them are applied under one row lock. Either the whole update
    lands or none of it does.

    Args:
        user: Owner of the file.
        file_id: ID of the file.
        starred: Optional new starred flag.
        display_name: Optional new display name.

    Returns:
        Updated File instance.

    Raises:
        ValidationError: If no field is given or a value is invalid.
        FileRecordNotFoundError: If file not found.
        InvalidStateTransitionError: If the file is in the trash.
    """
    if starred is None and display_name is None:
        raise ValidationError('At least one field must be provided')
    if starred is not None:
        _validate_starred(starred)
    new_name = None
    if display_name is not None:
        new_name = validate_display_name(display_name)

    if new_name is not None:
        transition = 'rename'
    else:
        transition = 'star' if starred else 'unstar'

    with transaction.atomic():
        file_instance = _lock_active_file(user, file_id, transition)
        old_name = file_instance.display_name
        update_fields = []
        if new_name is not None and new_name != old_name:
            file_instance.display_name = new_name
            update_fields.extend(['display_name', 'modified_at'])
        if starred is not None and starred != file_instance.starred:
            file_instance.starred = starred
            update_fields.append('starred')
        if update_fields:
            file_instance.save(update_fields=update_fields)

    if 'starred' in update_fields:
        logger.info(
            'File %s: ID=%d',
            'starred' if starred else 'unstarred',
            file_id,
        )
    if 'display_name' in update_fields:
        logger.info(
            'File renamed: %s -> %s (ID: %d)',
            old_name,
            new_name,
            file_id,
        )
        record_activity(
            user,
            file_instance,
            ActivityAction.RENAME,
            file_name=new_name,
            metadata={'old_name': old_name, 'new_name': new_name},
        )
    return file_instance


def get_view_url(user: _User, file_id: int) -> str:
    """Issue a short-lived URL to view a file inline.

    Args:
        user: Owner of the file.
        file_id: ID of the file.

    Returns:
        Presigned read URL.
    """
    file_instance = get_file(user, file_id)
    url = get_file_storage().generate_download_url(
        file_instance.object_key,
        settings.DRIVE_DOWNLOAD_URL_TTL_MINUTES,
    )
    record_activity(user, file_instance, ActivityAction.VIEW)
    return url


def get_download_url(user: _User, file_id: int) -> str:
    """Issue a short-lived URL that downloads under the display name.

    Args:
        user: Owner of the file.
        file_id: ID of the file.

    Returns:
        Presigned read URL with an attachment disposition.
    """
    file_instance = get_file(user, file_id)
    url = get_file_storage().generate_download_url(
        file_instance.object_key,
        settings.DRIVE_DOWNLOAD_URL_TTL_MINUTES,
        download_name=file_instance.display_name,
    )
    record_activity(user, file_instance, ActivityAction.DOWNLOAD)
    return url
