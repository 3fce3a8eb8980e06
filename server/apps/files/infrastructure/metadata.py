"""Name, type and object key rules for stored files."""

import re
import secrets
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Final

from django.core.exceptions import ValidationError

_NAME_MAX_LENGTH: Final = 255
_KEY_TOKEN_BYTES: Final = 4

# Characters that could change the meaning of a path or header value
_PATH_CONTROL_CHARS: Final = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE: Final = re.compile(r'\s+')

ALLOWED_EXTENSIONS: Final = frozenset((
    # Documents
    'pdf', 'doc', 'docx', 'txt', 'rtf',
    # Spreadsheets
    'xls', 'xlsx', 'csv',
    # Presentations
    'ppt', 'pptx',
    # Images
    'jpg', 'jpeg', 'png', 'gif', 'webp', 'svg',
    # Audio
    'mp3', 'wav', 'm4a',
    # Video
    'mp4', 'avi', 'mov', 'mkv',
    # Archives
    'zip', 'rar', '7z',
))

ALLOWED_MIME_TYPES: Final = frozenset((
    # Documents
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
    'application/rtf',
    # Spreadsheets
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'text/csv',
    # Presentations
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    # Images
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
    # Audio
    'audio/mpeg',
    'audio/wav',
    'audio/mp4',
    # Video
    'video/mp4',
    'video/x-msvideo',
    'video/quicktime',
    'video/x-matroska',
    # Archives
    'application/zip',
    'application/x-rar-compressed',
    'application/x-7z-compressed',
))


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = PurePosixPath(filename).suffix
    return extension.lstrip('.').lower()


def validate_display_name(name: str) -> str:
    """Validate a human-visible file name.

    Args:
        name: Proposed name.

    Returns:
        The name with surrounding whitespace removed.

    Raises:
        ValidationError: If the name is empty, too long or contains
            path-control characters.
    """
    cleaned = name.strip() if isinstance(name, str) else ''
    if not cleaned:
        raise ValidationError('File name is required')
    if len(cleaned) > _NAME_MAX_LENGTH:
        raise ValidationError('File name too long')
    if _PATH_CONTROL_CHARS.search(cleaned):
        raise ValidationError('File name contains invalid characters')
    return cleaned


def validate_file_type(filename: str, content_type: str) -> None:
    """Check both the extension and the declared content type.

    Neither is trusted alone: a file must pass both allow-lists.

    Args:
        filename: File name carrying the extension.
        content_type: Declared MIME type.

    Raises:
        ValidationError: If either value is not allowed.
    """
    extension = get_file_extension(filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(f'File type ".{extension}" not allowed')
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError('File MIME type not allowed')


def validate_file_size(size_bytes: int, max_bytes: int) -> None:
    """Check a declared upload size.

    Args:
        size_bytes: Declared size.
        max_bytes: Largest accepted size.

    Raises:
        ValidationError: If the size is not a positive integer within range.
    """
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, int):
        raise ValidationError('File size must be an integer')
    if size_bytes <= 0:
        raise ValidationError('File size must be positive')
    if size_bytes > max_bytes:
        raise ValidationError(
            f'File size exceeds maximum limit of {max_bytes} bytes',
        )


def sanitize_file_name(filename: str) -> str:
    """Make a file name safe to embed in an object key.

    Example: 'my report?.pdf' -> 'my_report_.pdf'

    Args:
        filename: Original file name.

    Returns:
        Name with path-control characters and whitespace replaced.
    """
    sanitized = _PATH_CONTROL_CHARS.sub('_', filename)
    sanitized = _WHITESPACE.sub('_', sanitized)
    return sanitized[:_NAME_MAX_LENGTH]


def build_object_key(user_id: int, filename: str) -> str:
    """Generate a fresh object key in the user's namespace.

    The prefix is time-ordered with microsecond precision plus a random
    token, so concurrent uploads of the same name never collide.

    Example: (123, 'a b.pdf') -> '123/20260131T143052123456a1b2c3d4_a_b.pdf'

    Args:
        user_id: Owner's user ID.
        filename: Original file name.

    Returns:
        Object key.
    """
    timestamp = datetime.now(tz=UTC).strftime('%Y%m%dT%H%M%S%f')
    token = secrets.token_hex(_KEY_TOKEN_BYTES)
    return f'{user_id}/{timestamp}{token}_{sanitize_file_name(filename)}'


def validate_object_key(user_id: int, object_key: str) -> None:
    """Validate object key follows user isolation rules.

    Ensures the key lives in the user's namespace and cannot escape it.
    This is a critical security check: completion trusts any key that
    passes it.

    Args:
        user_id: Owner's user ID.
        object_key: Key supplied by the client.

    Raises:
        ValidationError: If key doesn't start with user_id or is invalid.
    """
    if not object_key or not isinstance(object_key, str):
        raise ValidationError('Object key cannot be empty')

    if '\\' in object_key or object_key.startswith('/'):
        raise ValidationError('Object key contains invalid characters')

    path_parts = object_key.split('/')
    if len(path_parts) < 2 or any(
        part in {'', '.', '..'} for part in path_parts
    ):
        raise ValidationError('Object key has an invalid structure')

    if path_parts[0] != str(user_id):
        raise ValidationError(
            'Object key does not belong to the caller',
            code='foreign_namespace',
        )
