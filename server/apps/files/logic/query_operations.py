"""Read-only queries over a user's files.

Nothing here changes state or records activity.
"""

import logging
from dataclasses import dataclass
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import OuterRef, QuerySet, Subquery

from server.apps.files.models import RECENT_ACTIONS, ActivityEvent, File

# User type for Django's dynamic user model
_User = Any

# Shorter search queries are answered with no results
_MIN_SEARCH_LENGTH: Final = 2

FILE_STATES: Final = ('active', 'trashed', 'starred')

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Page:
    """One page of a file listing."""

    items: list[File]
    page: int
    page_size: int
    total: int
    has_next: bool


def validate_pagination(page: int, page_size: int) -> None:
    """Check page number and size bounds.

    Args:
        page: 1-based page number.
        page_size: Items per page.

    Raises:
        ValidationError: If either value is out of range.
    """
    if page < 1:
        raise ValidationError('Page must be at least 1')
    if not 1 <= page_size <= settings.DRIVE_MAX_PAGE_SIZE:
        raise ValidationError(
            f'Limit must be between 1 and {settings.DRIVE_MAX_PAGE_SIZE}',
        )


def _paginate(queryset: QuerySet[File], page: int, page_size: int) -> Page:
    validate_pagination(page, page_size)
    total = queryset.count()
    offset = (page - 1) * page_size
    items = list(queryset[offset:offset + page_size])
    return Page(
        items=items,
        page=page,
        page_size=page_size,
        total=total,
        has_next=offset + len(items) < total,
    )


def list_files(
    user: _User,
    state: str = 'active',
    page: int = 1,
    page_size: int | None = None,
) -> Page:
    """List user's files in one lifecycle view.

    Active and starred files come newest upload first, trashed files
    most recently trashed first.

    Args:
        user: Owner of the files.
        state: One of 'active', 'trashed' or 'starred'.
        page: 1-based page number.
        page_size: Items per page, defaults to the configured page size.

    Returns:
        Requested page.

    Raises:
        ValidationError: If the state or pagination is invalid.
    """
    if page_size is None:
        page_size = settings.DRIVE_DEFAULT_PAGE_SIZE

    files = File.objects.owned_by(user)
    if state == 'active':
        queryset = files.active().order_by('-uploaded_at', '-id')
    elif state == 'starred':
        queryset = files.starred().order_by('-uploaded_at', '-id')
    elif state == 'trashed':
        queryset = files.trashed().order_by('-trashed_at', '-id')
    else:
        raise ValidationError(
            f'State must be one of: {", ".join(FILE_STATES)}',
        )

    logger.debug('Listing %s files for user %s', state, user.username)
    return _paginate(queryset, page, page_size)


def search_files(
    user: _User,
    query: str,
    limit: int | None = None,
) -> list[File]:
    """Search user's active files by display name.

    The query is a literal, case-insensitive substring. Characters with
    special meaning in patterns match only themselves.

    Args:
        user: Owner of the files.
        query: Text to look for.
        limit: Maximum number of results, defaults to the search limit.

    Returns:
        Matching files, newest first.
    """
    term = query.strip()
    if len(term) < _MIN_SEARCH_LENGTH:
        return []

    if limit is None:
        limit = settings.DRIVE_SEARCH_LIMIT

    return list(
        File.objects.owned_by(user).active().filter(
            display_name__icontains=term,
        ).order_by('-uploaded_at', '-id')[:limit],
    )


def list_recent(
    user: _User,
    page: int = 1,
    page_size: int | None = None,
) -> Page:
    """List user's recently used files.

    A file's recency is its latest upload, view or rename event. Files
    in the trash or already purged are left out.

    Args:
        user: Owner of the files.
        page: 1-based page number.
        page_size: Items per page, defaults to the configured page size.

    Returns:
        Requested page; each file carries a ``last_activity`` attribute.

    Raises:
        ValidationError: If pagination is invalid.
    """
    if page_size is None:
        page_size = settings.DRIVE_DEFAULT_PAGE_SIZE

    latest_event = ActivityEvent.objects.filter(
        user=user,
        file_id=OuterRef('pk'),
        action__in=RECENT_ACTIONS,
    ).order_by('-created_at', '-id').values('created_at')[:1]

    queryset = File.objects.owned_by(user).active().annotate(
        last_activity=Subquery(latest_event),
    ).filter(
        last_activity__isnull=False,
    ).order_by('-last_activity', '-id')

    return _paginate(queryset, page, page_size)
