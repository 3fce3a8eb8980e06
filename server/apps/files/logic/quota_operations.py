"""Business logic for storage quota operations.

The per-user counter is shared by every request and every server
instance, so it is only ever changed with single conditional UPDATE
statements. Never load a quota, change ``used_bytes`` in Python and save
it back.
"""

import logging
from dataclasses import dataclass
from typing import Any

from django.db import transaction
from django.db.models import F, Sum  # noqa: WPS347
from django.utils import timezone

from server.apps.files.exceptions import LedgerUnderflowError, QuotaExceededError
from server.apps.files.models import File, UserQuota

# User type for Django's dynamic user model
_User = Any

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StorageSummary:
    """Storage usage as shown to the user."""

    used: int
    total: int
    available: int
    percentage: int


def get_or_create_quota(user: _User) -> UserQuota:
    """Get or create quota for user (on-demand creation).

    Args:
        user: User to get quota for.

    Returns:
        UserQuota instance for the user.
    """
    quota, created = UserQuota.objects.get_or_create(user=user)
    if created:
        logger.info(
            'Created quota for user %s: %d bytes',
            user.username,
            quota.quota_bytes,
        )
    return quota


def check_capacity(user: _User, size_bytes: int) -> None:
    """Check if user has enough quota for an upload.

    This is a read-only, advisory check: nothing is reserved, so two
    concurrent callers may both pass it.

    Args:
        user: User to check quota for.
        size_bytes: Size of the upload in bytes.

    Raises:
        QuotaExceededError: If upload would exceed quota.
    """
    quota = get_or_create_quota(user)

    if not quota.has_space_for(size_bytes):
        logger.warning(
            'Quota exceeded for user %s: need %d, have %d available',
            user.username,
            size_bytes,
            quota.available_bytes(),
        )
        raise QuotaExceededError(
            quota_bytes=quota.quota_bytes,
            used_bytes=quota.used_bytes,
            required_bytes=size_bytes,
        )


def commit_usage(
    user: _User,
    delta_bytes: int,
    *,
    enforce_ceiling: bool = False,
) -> None:
    """Atomically adjust user's storage usage by a signed delta.

    Positive deltas are charged on upload completion, negative ones are
    released on purge. A release is only applied when the counter holds
    at least that many bytes.

    Args:
        user: User whose usage changes.
        delta_bytes: Signed number of bytes.
        enforce_ceiling: Refuse a charge that would exceed the quota.

    Raises:
        LedgerUnderflowError: If a release would make usage negative.
        QuotaExceededError: If ``enforce_ceiling`` is set and the charge
            does not fit.
    """
    if delta_bytes == 0:
        return

    get_or_create_quota(user)
    rows = UserQuota.objects.filter(user=user)
    if delta_bytes < 0:
        rows = rows.filter(used_bytes__gte=-delta_bytes)
    elif enforce_ceiling:
        rows = rows.filter(used_bytes__lte=F('quota_bytes') - delta_bytes)

    updated = rows.update(
        used_bytes=F(_USED_BYTES_FIELD) + delta_bytes,
        updated_at=timezone.now(),
    )

    if updated == 0:
        quota = UserQuota.objects.get(user=user)
        if delta_bytes < 0:
            logger.error(
                'Refusing to release %d bytes for user %s, only %d recorded',
                -delta_bytes,
                user.username,
                quota.used_bytes,
            )
            raise LedgerUnderflowError(quota.used_bytes, -delta_bytes)
        logger.warning(
            'Hard quota refused %d bytes for user %s (%d/%d used)',
            delta_bytes,
            user.username,
            quota.used_bytes,
            quota.quota_bytes,
        )
        raise QuotaExceededError(
            quota_bytes=quota.quota_bytes,
            used_bytes=quota.used_bytes,
            required_bytes=delta_bytes,
        )

    logger.debug(
        'Committed %+d bytes to usage of user %s',
        delta_bytes,
        user.username,
    )


def increment_usage(user: _User, size_bytes: int) -> None:
    """Atomically increment user's storage usage.

    Args:
        user: User to increment usage for.
        size_bytes: Bytes to add to usage.
    """
    commit_usage(user, size_bytes)


def decrement_usage(user: _User, size_bytes: int) -> None:
    """Atomically decrement user's storage usage.

    Prevents negative values by clamping to 0.

    Args:
        user: User to decrement usage for.
        size_bytes: Bytes to subtract from usage.
    """
    try:
        commit_usage(user, -size_bytes)
    except LedgerUnderflowError:
        UserQuota.objects.filter(
            user=user,
            used_bytes__lt=size_bytes,
        ).update(used_bytes=0, updated_at=timezone.now())


def recalculate_usage(user: _User) -> int:
    """Recalculate user's storage usage from actual files.

    This is useful for fixing inconsistencies left by the soft-limit race
    window or by an interrupted purge. Includes files in trash since they
    still count against quota.

    Args:
        user: User to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    with transaction.atomic():
        get_or_create_quota(user)
        # Commits wait on this lock, so the sum below sees all of them
        quota = UserQuota.objects.select_for_update().get(user=user)
        old_usage = quota.used_bytes

        # Sum all file sizes for this user (including trash)
        total = File.objects.owned_by(user).aggregate(
            total=Sum('size_bytes'),
        )['total'] or 0

        UserQuota.objects.filter(user=user).update(
            used_bytes=total,
            updated_at=timezone.now(),
        )

    logger.info(
        'Recalculated usage for user %s: %d -> %d bytes',
        user.username,
        old_usage,
        total,
    )

    return total


def get_storage_summary(user: _User) -> StorageSummary:
    """Build the storage usage summary for a user.

    Args:
        user: User to summarize.

    Returns:
        Used, total and available bytes plus the rounded percentage.
    """
    quota = get_or_create_quota(user)
    if quota.quota_bytes:
        percentage = round(quota.used_bytes * 100 / quota.quota_bytes)
    else:
        percentage = 0
    return StorageSummary(
        used=quota.used_bytes,
        total=quota.quota_bytes,
        available=quota.available_bytes(),
        percentage=percentage,
    )
