"""Business logic for the file activity log.

Recording is best effort and at most once: the lifecycle operation that
triggered an event has already been applied, so a failure to append the
event is logged and dropped instead of being reported to the caller.
"""

import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from server.apps.files.models import ActivityAction, ActivityEvent, File

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def record_activity(
    user: _User,
    file_instance: File,
    action: ActivityAction,
    file_name: str | None = None,
    metadata: dict[str, str] | None = None,
) -> ActivityEvent | None:
    """Append an activity event without affecting the caller.

    The insert runs in its own savepoint so a failure cannot poison an
    enclosing transaction.

    Args:
        user: User who performed the action.
        file_instance: File the action applies to.
        action: Action tag.
        file_name: Name to record, defaults to the file's display name.
        metadata: Optional details, e.g. old and new names for a rename.

    Returns:
        Created event, or None if it could not be written.
    """
    try:
        with transaction.atomic():
            event = ActivityEvent.objects.create(
                user=user,
                file_id=file_instance.id,
                action=action,
                file_name=file_name or file_instance.display_name,
                metadata=metadata,
            )
    except Exception:
        logger.exception(
            'Failed to record %s activity for file %s',
            action,
            file_instance.id,
        )
        return None

    logger.debug(
        'Recorded %s activity for file %d',
        action,
        file_instance.id,
    )
    return event


def list_activity(
    user: _User,
    limit: int | None = None,
) -> QuerySet[ActivityEvent]:
    """List user's most recent activity, newest first.

    Args:
        user: User whose activity to list.
        limit: Maximum number of events, defaults to the feed limit.

    Returns:
        QuerySet of activity events.
    """
    if limit is None:
        limit = settings.DRIVE_ACTIVITY_FEED_LIMIT
    return ActivityEvent.objects.filter(user=user).order_by(
        '-created_at',
        '-id',
    )[:limit]
