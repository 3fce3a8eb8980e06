"""Tests for listing, search and recent view queries."""

from datetime import timedelta

import pytest
from django.core.exceptions import ValidationError
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.utils import timezone

from server.apps.files.logic.activity_operations import record_activity
from server.apps.files.logic.query_operations import (
    list_files,
    list_recent,
    search_files,
    validate_pagination,
)
from server.apps.files.models import ActivityAction, ActivityEvent, File


def _age(file_instance, **delta):
    File.objects.filter(pk=file_instance.pk).update(
        uploaded_at=timezone.now() - timedelta(**delta),
    )


def _record_at(user, file_instance, action, minutes_ago):
    event = record_activity(user, file_instance, action)
    ActivityEvent.objects.filter(pk=event.pk).update(
        created_at=timezone.now() - timedelta(minutes=minutes_ago),
    )


@pytest.mark.django_db
class TestListFiles:
    """Tests for list_files function."""

    def test_active_newest_first(self, user, other_user, make_file):
        """Test active files are listed newest upload first."""
        old = make_file(user, name='old.txt')
        new = make_file(user, name='new.txt')
        make_file(user, name='gone.txt', trashed_at=timezone.now())
        make_file(other_user, name='foreign.txt')
        _age(old, days=2)
        _age(new, days=1)

        page = list_files(user, 'active')

        assert page.items == [new, old]
        assert page.total == 2
        assert page.has_next is False

    def test_trashed_by_trash_time(self, user, make_file):
        """Test trash is listed most recently trashed first."""
        now = timezone.now()
        first = make_file(user, name='a.txt', trashed_at=now - timedelta(hours=2))
        second = make_file(user, name='b.txt', trashed_at=now - timedelta(hours=1))

        page = list_files(user, 'trashed')

        assert page.items == [second, first]

    def test_starred_excludes_trash(self, user, make_file):
        """Test starred view only shows active starred files."""
        starred = make_file(user, name='s.txt', starred=True)
        make_file(user, name='plain.txt')
        make_file(
            user,
            name='ts.txt',
            starred=True,
            trashed_at=timezone.now(),
        )

        assert list_files(user, 'starred').items == [starred]

    def test_pagination(self, user, make_file):
        """Test pages are sliced and report whether more follow."""
        for index in range(5):
            make_file(user, name=f'{index}.txt')

        first = list_files(user, 'active', page=1, page_size=2)
        last = list_files(user, 'active', page=3, page_size=2)

        assert len(first.items) == 2
        assert first.has_next is True
        assert len(last.items) == 1
        assert last.has_next is False
        assert last.total == 5

    def test_unknown_state(self, user):
        """Test an unknown view name is invalid input."""
        with pytest.raises(ValidationError):
            list_files(user, 'deleted')


@pytest.mark.parametrize(('page', 'page_size'), [(0, 20), (1, 0), (1, 101)])
def test_validate_pagination_rejects(page, page_size):
    """Test out-of-range page numbers and sizes."""
    with pytest.raises(ValidationError):
        validate_pagination(page, page_size)


def test_validate_pagination_accepts_bounds():
    """Test the maximum page size is allowed."""
    validate_pagination(1, 100)


@pytest.mark.django_db
class TestSearchFiles:
    """Tests for search_files function."""

    def test_case_insensitive_substring(self, user, make_file):
        """Test matching ignores case and excludes trash."""
        match = make_file(user, name='Annual REPORT.pdf')
        make_file(user, name='report-old.pdf', trashed_at=timezone.now())
        make_file(user, name='notes.txt')

        assert search_files(user, 'report') == [match]

    def test_short_query_skips_database(self, user, make_file):
        """Test queries under two characters return nothing."""
        make_file(user, name='a.txt')

        with CaptureQueriesContext(connection) as queries:
            assert search_files(user, ' a ') == []

        assert len(queries) == 0

    @pytest.mark.parametrize('query', ['.*', '%%', '__', '[a]', '(.+)'])
    def test_metacharacters_are_literal(self, user, make_file, query):
        """Test pattern syntax only matches itself."""
        make_file(user, name='plain.txt')
        make_file(user, name='data_2024.csv')

        assert search_files(user, query) == []

    def test_metacharacters_match_themselves(self, user, make_file):
        """Test a literal underscore finds names containing it."""
        match = make_file(user, name='data_2024.csv')
        make_file(user, name='data-2024.csv')

        assert search_files(user, 'a_2') == [match]

    def test_limit(self, user, make_file):
        """Test results are capped at the search limit."""
        for index in range(10):
            make_file(user, name=f'photo{index}.png')

        assert len(search_files(user, 'photo')) == 8

    def test_other_users_not_searched(self, user, other_user, make_file):
        """Test search is scoped to the caller."""
        make_file(other_user, name='secret.pdf')

        assert search_files(user, 'secret') == []


@pytest.mark.django_db
class TestListRecent:
    """Tests for list_recent function."""

    def test_latest_event_orders_files(self, user, make_file):
        """Test the latest upload, view or rename decides the order."""
        older = make_file(user, name='older.txt')
        newer = make_file(user, name='newer.txt')
        _record_at(user, older, ActivityAction.UPLOAD, minutes_ago=30)
        _record_at(user, newer, ActivityAction.UPLOAD, minutes_ago=20)
        _record_at(user, older, ActivityAction.VIEW, minutes_ago=10)

        page = list_recent(user)

        assert page.items == [older, newer]
        assert page.items[0].last_activity > page.items[1].last_activity

    def test_ignores_other_actions(self, user, make_file):
        """Test downloads and restores do not count as recent use."""
        viewed = make_file(user, name='viewed.txt')
        downloaded = make_file(user, name='downloaded.txt')
        _record_at(user, viewed, ActivityAction.VIEW, minutes_ago=30)
        _record_at(user, downloaded, ActivityAction.DOWNLOAD, minutes_ago=1)

        assert list_recent(user).items == [viewed]

    def test_excludes_trashed_and_purged(self, user, make_file):
        """Test only live, active files appear."""
        live = make_file(user, name='live.txt')
        trashed = make_file(user, name='trashed.txt', trashed_at=timezone.now())
        purged = make_file(user, name='purged.txt')
        for file_instance in (live, trashed, purged):
            _record_at(user, file_instance, ActivityAction.UPLOAD, minutes_ago=5)
        purged.delete()

        assert list_recent(user).items == [live]

    def test_files_without_events_are_left_out(self, user, make_file):
        """Test a file never used does not appear."""
        make_file(user)

        assert list_recent(user).total == 0
