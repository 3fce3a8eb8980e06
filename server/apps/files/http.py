"""JSON plumbing shared by the files API views.

``json_api`` wraps a view so it only has to return data: it rejects
anonymous callers, parses JSON bodies and turns domain errors into the
``{"error": {"kind": ..., "message": ...}}`` envelope.
"""

import json
import logging
from collections.abc import Callable, Sequence
from functools import wraps
from http import HTTPStatus
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from server.apps.files.exceptions import DriveError, QuotaExceededError
from server.apps.files.logic.query_operations import Page
from server.apps.files.models import ActivityEvent, File

_View = Callable[..., Any]

_INTERNAL_MESSAGE: Final = 'Internal server error'

logger = logging.getLogger(__name__)


def error_response(
    kind: str,
    message: str,
    status: int,
    **extra: Any,
) -> JsonResponse:
    """Build the error envelope.

    Args:
        kind: Stable machine-checkable error kind.
        message: Human-readable message.
        status: HTTP status code.
        extra: Additional fields for the error object.

    Returns:
        JSON response carrying the error.
    """
    payload = {'kind': kind, 'message': message, **extra}
    return JsonResponse({'error': payload}, status=status)


def _validation_message(error: ValidationError) -> str:
    return '; '.join(error.messages)


def _drive_error_response(error: DriveError) -> JsonResponse:
    if isinstance(error, QuotaExceededError):
        return error_response(
            error.kind,
            str(error),
            error.status_code,
            available_bytes=error.available_bytes,
        )
    if error.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error('Request failed with %s: %s', error.kind, error)
        return error_response(
            error.kind,
            'Storage service unavailable'
            if error.status_code == HTTPStatus.BAD_GATEWAY
            else _INTERNAL_MESSAGE,
            error.status_code,
        )
    return error_response(error.kind, str(error), error.status_code)


def parse_json_body(request: HttpRequest) -> dict[str, Any]:
    """Decode a JSON object request body.

    Args:
        request: Incoming request.

    Returns:
        Decoded object, empty when the body is empty.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise ValidationError('Request body must be valid JSON') from error
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


def json_api(methods: Sequence[str]) -> Callable[[_View], _View]:
    """Decorate a view as an authenticated JSON endpoint.

    The wrapped view receives the parsed body as ``request.json`` and
    returns either a response or data to serialize with status 200.

    Args:
        methods: Allowed HTTP methods.

    Returns:
        View decorator.
    """
    def decorator(view: _View) -> _View:
        @require_http_methods(list(methods))
        @wraps(view)
        def wrapper(
            request: HttpRequest,
            *args: Any,
            **kwargs: Any,
        ) -> HttpResponse:
            if not request.user.is_authenticated:
                return error_response(
                    'unauthenticated',
                    'Authentication required',
                    HTTPStatus.UNAUTHORIZED,
                )
            try:
                if request.content_type == 'application/json':
                    request.json = parse_json_body(request)  # type: ignore[attr-defined]
                else:
                    request.json = {}  # type: ignore[attr-defined]
                result = view(request, *args, **kwargs)
            except ValidationError as error:
                return error_response(
                    'invalid_input',
                    _validation_message(error),
                    HTTPStatus.BAD_REQUEST,
                )
            except DriveError as error:
                return _drive_error_response(error)
            except Exception:
                logger.exception(
                    'Unhandled error in %s %s',
                    request.method,
                    request.path,
                )
                return error_response(
                    'internal',
                    _INTERNAL_MESSAGE,
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                )
            if isinstance(result, HttpResponse):
                return result
            return JsonResponse(result, safe=False)

        return wrapper

    return decorator


def parse_positive_int(raw: str | None, name: str, default: int) -> int:
    """Parse an integer query parameter.

    Args:
        raw: Raw parameter value or None when absent.
        name: Parameter name used in the error message.
        default: Value used when the parameter is absent.

    Returns:
        Parsed integer.

    Raises:
        ValidationError: If the value is not an integer.
    """
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValidationError(f'{name} must be an integer') from error


def serialize_file(file_instance: File) -> dict[str, Any]:
    """Public representation of a file record."""
    payload = {
        'id': file_instance.id,
        'name': file_instance.display_name,
        'object_key': file_instance.object_key,
        'size_bytes': file_instance.size_bytes,
        'mime_type': file_instance.mime_type,
        'extension': file_instance.get_extension(),
        'starred': file_instance.starred,
        'state': 'trashed' if file_instance.is_trashed else 'active',
        'uploaded_at': file_instance.uploaded_at.isoformat(),
        'modified_at': file_instance.modified_at.isoformat(),
        'trashed_at': (
            file_instance.trashed_at.isoformat()
            if file_instance.trashed_at
            else None
        ),
    }
    last_activity = getattr(file_instance, 'last_activity', None)
    if last_activity is not None:
        payload['last_activity'] = last_activity.isoformat()
    return payload


def serialize_page(page: Page) -> dict[str, Any]:
    """Public representation of a page of files."""
    return {
        'items': [serialize_file(file_instance) for file_instance in page.items],
        'page': page.page,
        'limit': page.page_size,
        'total': page.total,
        'has_next': page.has_next,
    }


def serialize_event(event: ActivityEvent) -> dict[str, Any]:
    """Public representation of an activity event."""
    return {
        'id': event.id,
        'file_id': event.file_id,
        'action': event.action,
        'file_name': event.file_name,
        'metadata': event.metadata,
        'created_at': event.created_at.isoformat(),
    }
