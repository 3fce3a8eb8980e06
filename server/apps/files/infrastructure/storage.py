"""Custom storage backend for S3-compatible storage."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Final, final, override

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.files.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

_SECONDS_PER_MINUTE: Final = 60
_NOT_FOUND_CODES: Final = frozenset(('404', 'NoSuchKey', 'NotFound'))
_DEFAULT_CONTENT_TYPE: Final = 'application/octet-stream'


@dataclass(frozen=True, slots=True)
class ObjectProperties:
    """Authoritative properties of a stored object."""

    size_bytes: int
    content_type: str
    last_modified: datetime | None


@final
class FileStorage(S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with:
    - Presigned, key-scoped upload and download URLs
    - Object property lookups for upload reconciliation
    - Transaction rollback support for failed DB operations
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Deleting a key that does not exist succeeds, so the call is
        idempotent.

        Args:
            name: Storage path of file to delete.

        Raises:
            StorageUnavailableError: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to delete file from storage: %s', name)
            raise StorageUnavailableError(
                'Object store rejected the delete request',
            ) from error

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded file for DB transaction rollback.

        This method is called when a database transaction fails after
        a file has been successfully uploaded to S3. It attempts to
        delete the file to maintain consistency.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the DB rollback has already occurred.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except Exception:
            # The file will remain in storage but not in database
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def generate_upload_url(
        self,
        name: str,
        content_type: str,
        ttl_minutes: int,
    ) -> str:
        """Create a write-only URL for a single object key.

        The signature covers the bucket, the key and the content type,
        so the URL cannot be reused for another object.

        Args:
            name: Object key the client may write.
            content_type: Content type the client must send.
            ttl_minutes: Lifetime of the URL.

        Returns:
            Presigned PUT URL.
        """
        return self._presign(
            'put_object',
            {
                'Key': self._object_key(name),
                'ContentType': content_type,
            },
            ttl_minutes,
        )

    def generate_download_url(
        self,
        name: str,
        ttl_minutes: int,
        download_name: str | None = None,
    ) -> str:
        """Create a read-only URL for a single object key.

        Args:
            name: Object key to read.
            ttl_minutes: Lifetime of the URL.
            download_name: When given, the response is served as an
                attachment saved under this name.

        Returns:
            Presigned GET URL.
        """
        params: dict[str, str] = {'Key': self._object_key(name)}
        if download_name:
            safe_name = download_name.replace('"', '')
            params['ResponseContentDisposition'] = (
                f'attachment; filename="{safe_name}"'
            )
        return self._presign('get_object', params, ttl_minutes)

    def get_object_properties(self, name: str) -> ObjectProperties | None:
        """Read size and content type of a stored object.

        Args:
            name: Object key.

        Returns:
            Object properties, or None if the object does not exist.

        Raises:
            StorageUnavailableError: If the lookup fails for another reason.
        """
        client = self.connection.meta.client
        try:
            response = client.head_object(
                Bucket=self.bucket_name,
                Key=self._object_key(name),
            )
        except ClientError as error:
            error_code = str(error.response.get('Error', {}).get('Code'))
            if error_code in _NOT_FOUND_CODES:
                logger.warning('Object not found in storage: %s', name)
                return None
            logger.exception('Failed to read object properties: %s', name)
            raise StorageUnavailableError(
                'Object store rejected the lookup request',
            ) from error
        except BotoCoreError as error:
            logger.exception('Failed to read object properties: %s', name)
            raise StorageUnavailableError(
                'Object store is unreachable',
            ) from error

        return ObjectProperties(
            size_bytes=int(response.get('ContentLength', 0)),
            content_type=response.get('ContentType') or _DEFAULT_CONTENT_TYPE,
            last_modified=response.get('LastModified'),
        )

    def object_exists(self, name: str) -> bool:
        """Check whether an object is stored under the key.

        Args:
            name: Object key.

        Returns:
            True if the object exists.
        """
        return self.get_object_properties(name) is not None

    def _object_key(self, name: str) -> str:
        return self._normalize_name(clean_name(name))

    def _presign(
        self,
        client_method: str,
        params: dict[str, str],
        ttl_minutes: int,
    ) -> str:
        client = self.connection.meta.client
        try:
            return client.generate_presigned_url(
                ClientMethod=client_method,
                Params={'Bucket': self.bucket_name, **params},
                ExpiresIn=ttl_minutes * _SECONDS_PER_MINUTE,
            )
        except (BotoCoreError, ClientError) as error:
            logger.exception(
                'Failed to presign %s for %s',
                client_method,
                params.get('Key'),
            )
            raise StorageUnavailableError(
                'Could not issue a storage credential',
            ) from error


def get_file_storage() -> FileStorage:
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]
