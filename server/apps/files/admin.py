"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.files.models import ActivityEvent, File, UserQuota


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model.

    Files are purged through the trash, never deleted from the admin,
    so the storage object and the quota stay in step with the record.
    """

    list_display = [
        'display_name',
        'user',
        'size_display',
        'mime_type',
        'starred',
        'state_display',
        'uploaded_at',
    ]

    list_filter = [
        'starred',
        'mime_type',
        'uploaded_at',
        'trashed_at',
    ]

    search_fields = [
        'display_name',
        'blob',
        'user__username',
    ]

    readonly_fields = [
        'blob',
        'user',
        'size_bytes',
        'mime_type',
        'uploaded_at',
        'modified_at',
        'trashed_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('display_name', 'blob', 'user', 'starred'),
        }),
        ('Metadata', {
            'fields': ('size_bytes', 'mime_type'),
        }),
        ('Timestamps', {
            'fields': ('uploaded_at', 'modified_at', 'trashed_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format."""
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def state_display(self, obj: File) -> str:
        """Display lifecycle state."""
        return 'Trashed' if obj.is_trashed else 'Active'
    state_display.short_description = 'State'  # type: ignore[attr-defined]

    def has_delete_permission(
        self,
        request: HttpRequest,
        obj: File | None = None,
    ) -> bool:
        """Disable deletion; purge goes through the trash."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')


@admin.register(ActivityEvent)
class ActivityEventAdmin(admin.ModelAdmin[ActivityEvent]):
    """Read-only admin interface for the activity log."""

    list_display = [
        'created_at',
        'user',
        'action',
        'file_name',
        'file_id',
    ]

    list_filter = [
        'action',
        'created_at',
    ]

    search_fields = [
        'file_name',
        'user__username',
    ]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Events are only written by the application."""
        return False

    def has_change_permission(
        self,
        request: HttpRequest,
        obj: ActivityEvent | None = None,
    ) -> bool:
        """Events are append-only."""
        return False

    def has_delete_permission(
        self,
        request: HttpRequest,
        obj: ActivityEvent | None = None,
    ) -> bool:
        """Events are append-only."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[ActivityEvent]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('user')


@admin.register(UserQuota)
class UserQuotaAdmin(admin.ModelAdmin[UserQuota]):
    """Admin interface for UserQuota model."""

    list_display = [
        'user',
        'quota_display',
        'used_display',
        'percentage_display',
        'status_display',
    ]

    search_fields = [
        'user__username',
        'user__email',
    ]

    readonly_fields = [
        'user',
        'used_bytes',
        'updated_at',
    ]

    fieldsets = (
        ('User', {
            'fields': ('user',),
        }),
        ('Quota Settings', {
            'fields': ('quota_bytes',),
        }),
        ('Current Usage', {
            'fields': ('used_bytes', 'updated_at'),
        }),
    )

    def quota_display(self, obj: UserQuota) -> str:
        """Display quota in human-readable format."""
        return _format_bytes(obj.quota_bytes)
    quota_display.short_description = 'Quota'  # type: ignore[attr-defined]

    def used_display(self, obj: UserQuota) -> str:
        """Display used bytes in human-readable format."""
        return _format_bytes(obj.used_bytes)
    used_display.short_description = 'Used'  # type: ignore[attr-defined]

    def percentage_display(self, obj: UserQuota) -> str:
        """Display percentage of quota used.

        Args:
            obj: UserQuota instance.

        Returns:
            Percentage string.
        """
        if obj.quota_bytes == 0:
            return '0%'
        percentage = (obj.used_bytes / obj.quota_bytes) * 100
        return f'{percentage:.1f}%'
    percentage_display.short_description = '%'  # type: ignore[attr-defined]

    def status_display(self, obj: UserQuota) -> str:
        """Display status indicator based on usage.

        Soft quota allows usage to pass the limit by up to one file, so
        'Over Quota' is a state the ledger can legitimately reach.

        Args:
            obj: UserQuota instance.

        Returns:
            HTML formatted status indicator.
        """
        if obj.quota_bytes == 0:
            percentage = 0.0
        else:
            percentage = (obj.used_bytes / obj.quota_bytes) * 100

        if percentage > 100:
            color = '#dc3545'  # Red - over quota
            status = 'Over Quota'
        elif percentage >= 90:
            color = '#ffc107'  # Yellow - warning
            status = 'Warning'
        else:
            color = '#28a745'  # Green - ok
            status = 'OK'

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[UserQuota]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('user')
