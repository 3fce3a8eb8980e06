"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from server.apps.files.models import File

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def bucket_name():
    """Name of the bucket the default storage writes to."""
    return settings.AWS_STORAGE_BUCKET_NAME


@pytest.fixture
def mock_s3(bucket_name):
    """Mock S3 service with the drive bucket.

    Yields:
        boto3 S3 resource with the drive bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket=bucket_name)

        yield conn


@pytest.fixture
def put_object(mock_s3, bucket_name):
    """Store an object directly, the way a client holding a write URL would.

    Returns:
        Callable taking key, body and content type.
    """
    def factory(key, body=b'test file content', content_type='text/plain'):
        mock_s3.Bucket(bucket_name).put_object(
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        return key

    return factory


@pytest.fixture
def make_file(db):
    """Create file records without touching storage.

    Returns:
        Callable creating a File for the given owner.
    """
    def factory(owner, name='test.txt', size_bytes=100, **kwargs):
        kwargs.setdefault('blob', f'{owner.id}/{name}')
        kwargs.setdefault('mime_type', 'text/plain')
        return File.objects.create(
            user=owner,
            display_name=name,
            size_bytes=size_bytes,
            **kwargs,
        )

    return factory


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def api_client(client, user):
    """Django test client logged in as ``user``.

    Returns:
        Authenticated test client.
    """
    client.force_login(user)
    return client
