"""Tests for file operations business logic."""

from urllib.parse import parse_qs, urlparse

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from server.apps.files.exceptions import (
    FileRecordNotFoundError,
    InvalidStateTransitionError,
)
from server.apps.files.logic.file_operations import (
    get_download_url,
    get_file,
    get_view_url,
    rename_file,
    set_starred,
    update_file,
)
from server.apps.files.models import ActivityAction, ActivityEvent


@pytest.mark.django_db
def test_get_file_owned(user, make_file):
    """Test owner can fetch a file in any state."""
    file_instance = make_file(user, trashed_at=timezone.now())

    assert get_file(user, file_instance.id) == file_instance


@pytest.mark.django_db
def test_get_file_other_user_is_not_found(user, other_user, make_file):
    """Test another user's file is reported as not found."""
    file_instance = make_file(other_user)

    with pytest.raises(FileRecordNotFoundError):
        get_file(user, file_instance.id)


@pytest.mark.django_db
def test_get_file_missing(user):
    """Test a missing id is reported as not found."""
    with pytest.raises(FileRecordNotFoundError):
        get_file(user, 99999)


@pytest.mark.django_db
def test_rename_file(user, make_file):
    """Test rename changes the display name and records old and new."""
    file_instance = make_file(user, name='old.txt')
    object_key = file_instance.object_key

    renamed = rename_file(user, file_instance.id, '  new.txt ')

    assert renamed.display_name == 'new.txt'
    assert renamed.object_key == object_key
    event = ActivityEvent.objects.get(action=ActivityAction.RENAME)
    assert event.file_name == 'new.txt'
    assert event.metadata == {'old_name': 'old.txt', 'new_name': 'new.txt'}


@pytest.mark.django_db
def test_rename_to_same_name_records_nothing(user, make_file):
    """Test renaming to the current name is a no-op."""
    file_instance = make_file(user, name='same.txt')

    rename_file(user, file_instance.id, 'same.txt')

    assert not ActivityEvent.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize('name', ['', '   ', 'a/b.txt', 'x' * 256])
def test_rename_invalid_name(user, make_file, name):
    """Test invalid names are rejected and nothing changes."""
    file_instance = make_file(user, name='keep.txt')

    with pytest.raises(ValidationError):
        rename_file(user, file_instance.id, name)

    file_instance.refresh_from_db()
    assert file_instance.display_name == 'keep.txt'


@pytest.mark.django_db
def test_rename_trashed_file_conflicts(user, make_file):
    """Test trashed files cannot be renamed."""
    file_instance = make_file(user, trashed_at=timezone.now())

    with pytest.raises(InvalidStateTransitionError):
        rename_file(user, file_instance.id, 'new.txt')


@pytest.mark.django_db
def test_rename_other_user_is_not_found(user, other_user, make_file):
    """Test renaming another user's file is reported as not found."""
    file_instance = make_file(other_user)

    with pytest.raises(FileRecordNotFoundError):
        rename_file(user, file_instance.id, 'new.txt')


@pytest.mark.django_db
def test_set_starred_toggles(user, make_file):
    """Test starring and unstarring an active file."""
    file_instance = make_file(user)

    assert set_starred(user, file_instance.id, True).starred is True
    assert set_starred(user, file_instance.id, False).starred is False


@pytest.mark.django_db
@pytest.mark.parametrize('value', ['true', 1, None])
def test_set_starred_requires_boolean(user, make_file, value):
    """Test non-boolean flags are invalid input."""
    file_instance = make_file(user)

    with pytest.raises(ValidationError):
        set_starred(user, file_instance.id, value)


@pytest.mark.django_db
def test_set_starred_trashed_conflicts(user, make_file):
    """Test trashed files cannot be starred."""
    file_instance = make_file(user, trashed_at=timezone.now())

    with pytest.raises(InvalidStateTransitionError):
        set_starred(user, file_instance.id, True)


@pytest.mark.django_db
def test_update_file_both_fields(user, make_file):
    """Test a partial update applying rename and star together."""
    file_instance = make_file(user, name='a.txt')

    updated = update_file(
        user,
        file_instance.id,
        starred=True,
        display_name='b.txt',
    )

    assert updated.starred is True
    assert updated.display_name == 'b.txt'


@pytest.mark.django_db
def test_update_file_requires_a_field(user, make_file):
    """Test an empty update is invalid input."""
    file_instance = make_file(user)

    with pytest.raises(ValidationError):
        update_file(user, file_instance.id)


@pytest.mark.django_db
def test_update_file_invalid_name_keeps_star(user, make_file):
    """Test an invalid name leaves the starred flag untouched."""
    file_instance = make_file(user, name='a.txt')

    with pytest.raises(ValidationError):
        update_file(user, file_instance.id, starred=True, display_name='a/b')

    file_instance.refresh_from_db()
    assert file_instance.starred is False
    assert file_instance.display_name == 'a.txt'


@pytest.mark.django_db
def test_get_view_url_records_view(user, make_file, mock_s3):
    """Test a view URL is issued and the view is recorded."""
    file_instance = make_file(user, name='photo.png')

    url = get_view_url(user, file_instance.id)

    assert file_instance.object_key in url
    assert ActivityEvent.objects.filter(
        file_id=file_instance.id,
        action=ActivityAction.VIEW,
    ).exists()


@pytest.mark.django_db
def test_get_download_url_uses_display_name(user, make_file, mock_s3):
    """Test a download URL saves under the display name."""
    file_instance = make_file(user, name='photo.png')

    url = get_download_url(user, file_instance.id)

    disposition = parse_qs(urlparse(url).query)['response-content-disposition']
    assert disposition == ['attachment; filename="photo.png"']
    assert ActivityEvent.objects.filter(
        file_id=file_instance.id,
        action=ActivityAction.DOWNLOAD,
    ).exists()


@pytest.mark.django_db
def test_get_view_url_other_user(user, other_user, make_file):
    """Test read URLs are never issued for another user's file."""
    file_instance = make_file(other_user)

    with pytest.raises(FileRecordNotFoundError):
        get_view_url(user, file_instance.id)
