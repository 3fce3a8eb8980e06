"""Exceptions for files app.

Every domain error carries a stable machine-checkable ``kind`` and the
HTTP status the API layer answers with. Input validation errors are
Django's ``ValidationError`` and map to ``invalid_input``.
"""

from typing import ClassVar


class DriveError(Exception):
    """Base class for file lifecycle and storage accounting errors."""

    kind: ClassVar[str] = 'internal'
    status_code: ClassVar[int] = 500


class FileRecordNotFoundError(DriveError):
    """Raised when a file does not exist or belongs to another user.

    Both cases are reported identically so that the existence of other
    users' files is never revealed.
    """

    kind = 'not_found'
    status_code = 404

    def __init__(self, file_id: object) -> None:
        """Initialize FileRecordNotFoundError.

        Args:
            file_id: Requested file ID.
        """
        self.file_id = file_id
        super().__init__('File not found')


class ObjectNotFoundError(DriveError):
    """Raised when an upload is completed but no object was stored."""

    kind = 'not_found'
    status_code = 404

    def __init__(self, object_key: str) -> None:
        """Initialize ObjectNotFoundError.

        Args:
            object_key: Key the client claimed to have uploaded.
        """
        self.object_key = object_key
        super().__init__('File not found in storage. Upload may have failed.')


class InvalidStateTransitionError(DriveError):
    """Raised when a lifecycle transition is not allowed from the state."""

    kind = 'conflict'
    status_code = 409

    def __init__(self, file_id: int, transition: str, state: str) -> None:
        """Initialize InvalidStateTransitionError.

        Args:
            file_id: ID of the file.
            transition: Attempted transition (trash, restore, purge, ...).
            state: Current state of the file.
        """
        self.file_id = file_id
        self.transition = transition
        self.state = state
        super().__init__(f'Cannot {transition} a file that is {state}')


class QuotaExceededError(DriveError):
    """Raised when upload would exceed user's storage quota."""

    kind = 'quota_exceeded'
    status_code = 413

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes
        self.available_bytes = max(0, quota_bytes - used_bytes)

        super().__init__(
            f'Storage limit exceeded: need {required_bytes} bytes, '
            f'only {self.available_bytes} bytes available',
        )


class LedgerUnderflowError(DriveError):
    """Raised when a usage release would take the counter below zero."""

    def __init__(self, used_bytes: int, released_bytes: int) -> None:
        """Initialize LedgerUnderflowError.

        Args:
            used_bytes: Counter value at the time of the release.
            released_bytes: Bytes the caller tried to release.
        """
        self.used_bytes = used_bytes
        self.released_bytes = released_bytes
        super().__init__(
            f'Cannot release {released_bytes} bytes, '
            f'only {used_bytes} bytes are recorded',
        )


class StorageUnavailableError(DriveError):
    """Raised when the object store fails to answer a request."""

    kind = 'upstream_unavailable'
    status_code = 502


class ImmutableRecordError(Exception):
    """Raised on attempts to modify or delete an append-only record."""
