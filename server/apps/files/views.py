"""JSON API views for the files app.

Views only translate HTTP to logic calls: validation, state changes and
activity recording all live in ``server.apps.files.logic``.
"""

import logging
from dataclasses import asdict
from http import HTTPStatus
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.http import require_GET

from server.apps.files.http import (
    error_response,
    json_api,
    parse_positive_int,
    serialize_event,
    serialize_file,
    serialize_page,
)
from server.apps.files.logic import (
    activity_operations,
    file_operations,
    query_operations,
    quota_operations,
    trash_operations,
    upload_operations,
)

logger = logging.getLogger(__name__)


def csrf_failure(request: HttpRequest, reason: str = '') -> HttpResponse:
    """Answer a failed anti-forgery check with the JSON error envelope."""
    logger.warning(
        'CSRF check failed for %s %s: %s',
        request.method,
        request.path,
        reason,
    )
    return error_response(
        'csrf_failed',
        'Invalid or missing CSRF token',
        HTTPStatus.FORBIDDEN,
    )


@require_GET
def csrf_token(request: HttpRequest) -> JsonResponse:
    """Issue the anti-forgery token for the current session."""
    return JsonResponse({'csrf_token': get_token(request)})


def _page_args(request: HttpRequest) -> tuple[int, int]:
    page = parse_positive_int(request.GET.get('page'), 'page', 1)
    page_size = parse_positive_int(
        request.GET.get('limit'),
        'limit',
        settings.DRIVE_DEFAULT_PAGE_SIZE,
    )
    return page, page_size


def _require_string(payload: dict[str, Any], field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str):
        raise ValidationError(f'{field} is required')
    return value


def _require_int(payload: dict[str, Any], field: str) -> int:
    value = payload.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{field} must be an integer')
    return value


@json_api(['POST'])
def request_upload(request: HttpRequest) -> dict[str, Any]:
    """Phase one: validate the upload and issue a write URL."""
    payload = request.json  # type: ignore[attr-defined]
    credential = upload_operations.request_upload_credential(
        request.user,
        file_name=_require_string(payload, 'file_name'),
        size_bytes=_require_int(payload, 'size_bytes'),
        content_type=_require_string(payload, 'content_type'),
    )
    return asdict(credential)


@json_api(['POST'])
def complete_upload(request: HttpRequest) -> JsonResponse:
    """Phase two: register an uploaded object as a file."""
    payload = request.json  # type: ignore[attr-defined]
    completion = upload_operations.complete_upload(
        request.user,
        object_key=_require_string(payload, 'object_key'),
        display_name=_require_string(payload, 'file_name'),
    )
    return JsonResponse(
        {'file': serialize_file(completion.file), 'created': completion.created},
        status=HTTPStatus.CREATED if completion.created else HTTPStatus.OK,
    )


@json_api(['POST'])
def direct_upload(request: HttpRequest) -> JsonResponse:
    """Single-phase multipart upload for small files."""
    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise ValidationError('file is required')
    file_instance = upload_operations.upload_file(
        request.user,
        uploaded,
        file_name=request.POST.get('file_name') or uploaded.name or '',
        content_type=uploaded.content_type or '',
    )
    return JsonResponse(
        {'file': serialize_file(file_instance)},
        status=HTTPStatus.CREATED,
    )


@json_api(['GET'])
def list_files(request: HttpRequest) -> dict[str, Any]:
    """List files in the requested lifecycle view."""
    page, page_size = _page_args(request)
    return serialize_page(
        query_operations.list_files(
            request.user,
            state=request.GET.get('state', 'active'),
            page=page,
            page_size=page_size,
        ),
    )


@json_api(['GET'])
def search_files(request: HttpRequest) -> dict[str, Any]:
    """Search active files by name."""
    results = query_operations.search_files(
        request.user,
        request.GET.get('q', ''),
    )
    return {'items': [serialize_file(file_instance) for file_instance in results]}


@json_api(['GET'])
def recent_files(request: HttpRequest) -> dict[str, Any]:
    """List recently used files."""
    page, page_size = _page_args(request)
    return serialize_page(
        query_operations.list_recent(request.user, page, page_size),
    )


@json_api(['GET', 'PATCH', 'DELETE'])
def file_detail(request: HttpRequest, file_id: int) -> dict[str, Any]:
    """Read, update (star, rename) or trash a file."""
    if request.method == 'PATCH':
        payload = request.json  # type: ignore[attr-defined]
        display_name = payload.get('name')
        if display_name is not None and not isinstance(display_name, str):
            raise ValidationError('name must be a string')
        file_instance = file_operations.update_file(
            request.user,
            file_id,
            starred=payload.get('starred'),
            display_name=display_name,
        )
    elif request.method == 'DELETE':
        file_instance = trash_operations.trash_file(request.user, file_id)
    else:
        file_instance = file_operations.get_file(request.user, file_id)
    return {'file': serialize_file(file_instance)}


@json_api(['PATCH'])
def restore_file(request: HttpRequest, file_id: int) -> dict[str, Any]:
    """Move a file out of the trash."""
    file_instance = trash_operations.restore_file(request.user, file_id)
    return {'file': serialize_file(file_instance)}


@json_api(['DELETE'])
def purge_file(request: HttpRequest, file_id: int) -> HttpResponse:
    """Permanently delete a trashed file."""
    trash_operations.purge_file(request.user, file_id)
    return HttpResponse(status=HTTPStatus.NO_CONTENT)


@json_api(['GET'])
def view_file(request: HttpRequest, file_id: int) -> dict[str, Any]:
    """Issue a short-lived URL to view a file."""
    return {'url': file_operations.get_view_url(request.user, file_id)}


@json_api(['GET'])
def download_file(request: HttpRequest, file_id: int) -> dict[str, Any]:
    """Issue a short-lived URL that downloads a file."""
    return {'url': file_operations.get_download_url(request.user, file_id)}


@json_api(['DELETE'])
def empty_trash(request: HttpRequest) -> dict[str, Any]:
    """Purge every file in the trash."""
    return {'deleted': trash_operations.empty_trash(request.user)}


@json_api(['GET'])
def storage_summary(request: HttpRequest) -> dict[str, Any]:
    """Report storage usage against the quota."""
    return asdict(quota_operations.get_storage_summary(request.user))


@json_api(['GET'])
def activity_feed(request: HttpRequest) -> dict[str, Any]:
    """List the latest activity events."""
    events = activity_operations.list_activity(request.user)
    return {'items': [serialize_event(event) for event in events]}
