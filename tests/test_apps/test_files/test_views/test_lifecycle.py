"""End-to-end lifecycle of a file through the API."""

import threading

import pytest
from django.db import connection
from django.urls import reverse

from server.apps.files.logic.upload_operations import complete_upload
from server.apps.files.models import ActivityAction, ActivityEvent, File, UserQuota

_JSON = 'application/json'


def _usage(user):
    return UserQuota.objects.get(user=user).used_bytes


def _events(action):
    return ActivityEvent.objects.filter(action=action).count()


@pytest.mark.django_db
def test_file_lifecycle(api_client, user, put_object, mock_s3, bucket_name):
    """Test credential, completion, trash, restore and purge in sequence."""
    UserQuota.objects.create(user=user, quota_bytes=1000, used_bytes=0)

    # Credential alone changes nothing
    credential = api_client.post(
        reverse('files:upload-credential'),
        {
            'file_name': 'notes.txt',
            'size_bytes': 100,
            'content_type': 'text/plain',
        },
        content_type=_JSON,
    ).json()
    assert credential['write_url']
    assert _usage(user) == 0
    assert not File.objects.exists()

    # Completion charges the stored size once
    put_object(credential['object_key'], body=b'x' * 100)
    completed = api_client.post(
        reverse('files:upload-complete'),
        {'object_key': credential['object_key'], 'file_name': 'notes.txt'},
        content_type=_JSON,
    )
    assert completed.status_code == 201
    file_id = completed.json()['file']['id']
    assert _usage(user) == 100
    assert File.objects.owned_by(user).active().count() == 1
    assert _events(ActivityAction.UPLOAD) == 1

    # Trash keeps the bytes charged
    detail_url = reverse('files:detail', args=[file_id])
    assert api_client.delete(detail_url).json()['file']['state'] == 'trashed'
    assert _usage(user) == 100
    assert _events(ActivityAction.DELETE) == 1

    # Restore
    restored = api_client.patch(reverse('files:restore', args=[file_id]))
    assert restored.json()['file']['state'] == 'active'
    assert _usage(user) == 100

    # Purge releases the bytes and removes the object
    api_client.delete(detail_url)
    purged = api_client.delete(reverse('files:purge', args=[file_id]))
    assert purged.status_code == 204
    assert _usage(user) == 0
    assert not File.objects.filter(pk=file_id).exists()
    assert not list(mock_s3.Bucket(bucket_name).objects.all())


@pytest.mark.postgres
@pytest.mark.django_db(transaction=True)
def test_concurrent_completions_commit_once(user, put_object):
    """Test racing completions of one key yield one record and one charge."""
    if connection.vendor == 'sqlite':
        pytest.skip('needs concurrent writers, run with PostgreSQL')

    key = put_object(f'{user.id}/abc_notes.txt', body=b'12345')
    barrier = threading.Barrier(2)
    results = []
    errors = []

    def complete():
        try:
            barrier.wait()
            results.append(complete_upload(user, key, 'notes.txt'))
        except Exception as error:
            errors.append(error)
        finally:
            connection.close()

    threads = [threading.Thread(target=complete) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors
    assert sorted(result.created for result in results) == [False, True]
    assert File.objects.count() == 1
    assert UserQuota.objects.get(user=user).used_bytes == 5
