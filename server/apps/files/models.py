"""Database models for files app."""

from pathlib import Path
from typing import Any, Final, final, override

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models

from server.apps.files.exceptions import ImmutableRecordError

User = get_user_model()

# Constants for field max lengths
_OBJECT_KEY_MAX_LENGTH: Final = 512
_DISPLAY_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_ACTION_MAX_LENGTH: Final = 16


class FileQuerySet(models.QuerySet['File']):
    """Query helpers for the file state machine."""

    def owned_by(self, user: Any) -> 'FileQuerySet':
        """Restrict to files belonging to ``user``."""
        return self.filter(user=user)

    def active(self) -> 'FileQuerySet':
        """Files that are not in the trash."""
        return self.filter(trashed_at__isnull=True)

    def trashed(self) -> 'FileQuerySet':
        """Files that are in the trash."""
        return self.filter(trashed_at__isnull=False)

    def starred(self) -> 'FileQuerySet':
        """Starred files that are not in the trash."""
        return self.active().filter(starred=True)


@final
class File(models.Model):
    """File stored in S3-compatible storage.

    Each file belongs to a user and its object lives under the user's
    namespace in the bucket: {user_id}/{time-ordered prefix}_{name}.

    A file is Active while ``trashed_at`` is empty and Trashed once it is
    set. Purging deletes the row, so there is no stored third state.
    """

    # Owner relationship
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    # Object in S3-compatible storage; the name is the object key
    blob = models.FileField(
        upload_to='',
        max_length=_OBJECT_KEY_MAX_LENGTH,
        help_text='Object key in storage: {user_id}/{prefix}_{name}',
    )

    display_name = models.CharField(
        max_length=_DISPLAY_NAME_MAX_LENGTH,
        help_text='Human-visible file name, editable by rename',
    )

    # Authoritative metadata read back from the object store
    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Content type reported by the object store',
    )

    starred = models.BooleanField(default=False)

    # Timestamps
    uploaded_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)
    trashed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text='Set while the file is in the trash',
    )

    objects = FileQuerySet.as_manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize active/starred listings
            models.Index(
                fields=['user', 'trashed_at', '-uploaded_at'],
                name='files_user_state_recent_idx',
            ),
            # Optimize trash listing and the cleanup job
            models.Index(
                fields=['user', '-trashed_at'],
                name='files_user_trashed_idx',
            ),
        ]

        constraints = [
            # One record per object key; also the upload completion lock
            models.UniqueConstraint(
                fields=['user', 'blob'],
                name='files_user_blob_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.display_name}'

    @property
    def object_key(self) -> str:
        """Object key of the stored content."""
        return self.blob.name

    @property
    def is_trashed(self) -> bool:
        """Whether the file is currently in the trash."""
        return self.trashed_at is not None

    def get_extension(self) -> str:
        """Extract file extension from the display name.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        extension = Path(self.display_name).suffix
        return extension.lstrip('.').lower()


class ActivityAction(models.TextChoices):
    """Actions recorded in the activity log."""

    UPLOAD = 'upload', 'Upload'
    VIEW = 'view', 'View'
    DOWNLOAD = 'download', 'Download'
    RENAME = 'rename', 'Rename'
    DELETE = 'delete', 'Delete'
    RESTORE = 'restore', 'Restore'


# Actions that count as "recently used" for the recent files view
RECENT_ACTIONS: Final = (
    ActivityAction.UPLOAD,
    ActivityAction.VIEW,
    ActivityAction.RENAME,
)


@final
class ActivityEvent(models.Model):
    """Append-only audit entry for a file lifecycle action.

    The file reference carries no database constraint so events survive
    the purge of the file they describe.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='activity_events',
    )

    file = models.ForeignKey(
        File,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='activity_events',
    )

    action = models.CharField(
        max_length=_ACTION_MAX_LENGTH,
        choices=ActivityAction.choices,
    )

    file_name = models.CharField(
        max_length=_DISPLAY_NAME_MAX_LENGTH,
        help_text='Display name of the file when the action happened',
    )

    metadata = models.JSONField(
        null=True,
        blank=True,
        help_text='Extra details, e.g. old_name/new_name for renames',
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Activity Event'  # type: ignore[mutable-override]
        verbose_name_plural = 'Activity Events'  # type: ignore[mutable-override]
        ordering = ['-created_at', '-id']

        indexes = [
            models.Index(
                fields=['user', '-created_at'],
                name='activity_user_recent_idx',
            ),
            models.Index(
                fields=['file', 'action', '-created_at'],
                name='activity_file_action_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.action}:{self.file_name}'

    @override
    def save(self, *args: Any, **kwargs: Any) -> None:
        """Insert the event; existing events are never rewritten.

        Raises:
            ImmutableRecordError: If the event was already stored.
        """
        if not self._state.adding:
            raise ImmutableRecordError('Activity events cannot be modified')
        super().save(*args, **kwargs)

    @override
    def delete(self, *args: Any, **kwargs: Any) -> tuple[int, dict[str, int]]:
        """Refuse deletion of individual events.

        Raises:
            ImmutableRecordError: Always.
        """
        raise ImmutableRecordError('Activity events cannot be deleted')


def default_quota_bytes() -> int:
    """Capacity assigned to newly created quotas.

    Returns:
        Configured per-account ceiling in bytes.
    """
    return settings.DRIVE_STORAGE_CAPACITY_BYTES


@final
class UserQuota(models.Model):
    """Storage ledger row for a user.

    Tracks user's storage limit and current usage. Usage includes all files
    including trashed ones, since trashed files still occupy storage.

    ``used_bytes`` is only ever changed through atomic updates issued by
    the quota operations module.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='quota',
        primary_key=True,
    )

    quota_bytes = models.BigIntegerField(
        default=default_quota_bytes,
        help_text='Storage quota limit in bytes',
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'User Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'User Quotas'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(quota_bytes__gte=0),
                name='quota_bytes_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}: {self.used_bytes}/{self.quota_bytes}'

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.quota_bytes

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        available = self.quota_bytes - self.used_bytes
        return max(0, available)
