"""Management command to clean up old files from trash."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.files.exceptions import DriveError
from server.apps.files.logic.trash_operations import purge_file
from server.apps.files.models import File

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete files that stayed in trash past the retention."""

    help = 'Purge files trashed longer than DRIVE_TRASH_RETENTION_DAYS'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be purged without purging',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max files to process (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        retention_days = settings.DRIVE_TRASH_RETENTION_DAYS

        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for files trashed before {cutoff} '
            f'(older than {retention_days} days)',
        )

        old_files = File.objects.trashed().filter(
            trashed_at__lte=cutoff,
        ).select_related('user').order_by('trashed_at')[:batch_size]

        count = 0
        failed = 0

        for file_instance in old_files:
            if dry_run:
                self.stdout.write(
                    f'Would purge: {file_instance.display_name} '
                    f'(user: {file_instance.user.username}, '
                    f'trashed: {file_instance.trashed_at})',
                )
                count += 1
                continue

            try:
                purge_file(file_instance.user, file_instance.id)
            except DriveError as exc:
                self.stderr.write(
                    f'Failed to purge {file_instance.id}: {exc}',
                )
                logger.exception(
                    'Failed to purge file from trash: %d',
                    file_instance.id,
                )
                failed += 1
                continue
            count += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} files from trash'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} files from trash, {failed} failed',
                ),
            )
