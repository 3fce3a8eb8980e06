"""Management command to rebuild quota counters from file records."""

from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from server.apps.files.logic.quota_operations import recalculate_usage


class Command(BaseCommand):
    """Set every user's used bytes to the sum of their file sizes."""

    help = 'Reconcile storage usage counters with stored files'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--user',
            dest='username',
            help='Only recalculate this user',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recalculation.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the requested user does not exist.
        """
        user_model = get_user_model()
        users = user_model.objects.order_by('pk')
        if options['username']:
            users = users.filter(username=options['username'])
            if not users.exists():
                raise CommandError(f'User not found: {options["username"]}')

        count = 0
        for user in users.iterator():
            total = recalculate_usage(user)
            self.stdout.write(f'{user.username}: {total} bytes')
            count += 1

        self.stdout.write(
            self.style.SUCCESS(f'Recalculated usage for {count} users'),
        )
