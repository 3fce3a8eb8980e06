"""Tests for recalculate_quota management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from server.apps.files.models import UserQuota


@pytest.mark.django_db
def test_recalculate_all_users(user, other_user, make_file):
    """Test every user's counter is rebuilt from file sizes."""
    UserQuota.objects.create(user=user, used_bytes=999)
    make_file(user, size_bytes=10)
    make_file(other_user, size_bytes=20)

    out = StringIO()
    call_command('recalculate_quota', stdout=out)

    assert UserQuota.objects.get(user=user).used_bytes == 10
    assert UserQuota.objects.get(user=other_user).used_bytes == 20
    assert 'Recalculated usage for 2 users' in out.getvalue()


@pytest.mark.django_db
def test_recalculate_single_user(user, other_user, make_file):
    """Test --user limits the rebuild to one account."""
    UserQuota.objects.create(user=other_user, used_bytes=999)
    make_file(user, size_bytes=10)

    call_command('recalculate_quota', '--user', user.username, stdout=StringIO())

    assert UserQuota.objects.get(user=user).used_bytes == 10
    assert UserQuota.objects.get(user=other_user).used_bytes == 999


@pytest.mark.django_db
def test_recalculate_unknown_user(user):
    """Test an unknown username is an error."""
    with pytest.raises(CommandError):
        call_command('recalculate_quota', '--user', 'nobody', stdout=StringIO())
