"""Tests for metadata utilities."""

import re

import pytest
from django.core.exceptions import ValidationError

from server.apps.files.infrastructure.metadata import (
    build_object_key,
    get_file_extension,
    sanitize_file_name,
    validate_display_name,
    validate_file_size,
    validate_file_type,
    validate_object_key,
)


def test_get_file_extension():
    """Test file extension extraction."""
    assert get_file_extension('test.pdf') == 'pdf'
    assert get_file_extension('TEST.PDF') == 'pdf'
    assert get_file_extension('file.tar.gz') == 'gz'
    assert get_file_extension('noextension') == ''


def test_validate_display_name_strips_whitespace():
    """Test surrounding whitespace is removed."""
    assert validate_display_name('  report.pdf  ') == 'report.pdf'


@pytest.mark.parametrize('name', [
    '',
    '   ',
    'a' * 256,
    'dir/report.pdf',
    'back\\slash.pdf',
    'what?.pdf',
    'pipe|name.txt',
    'new\nline.txt',
])
def test_validate_display_name_rejects(name):
    """Test empty, too long and path-control names are rejected."""
    with pytest.raises(ValidationError):
        validate_display_name(name)


def test_validate_display_name_accepts_max_length():
    """Test a 255-character name is accepted."""
    name = 'a' * 251 + '.pdf'

    assert validate_display_name(name) == name


def test_validate_file_type_accepts_allowed_pair():
    """Test an allowed extension with an allowed content type passes."""
    validate_file_type('photo.JPG', 'image/jpeg')


def test_validate_file_type_rejects_extension():
    """Test a disallowed extension is rejected even with a good type."""
    with pytest.raises(ValidationError, match='not allowed'):
        validate_file_type('script.exe', 'application/pdf')


def test_validate_file_type_rejects_content_type():
    """Test a disallowed content type is rejected even with a good name."""
    with pytest.raises(ValidationError, match='MIME'):
        validate_file_type('report.pdf', 'application/x-msdownload')


@pytest.mark.parametrize('size', [0, -1, 1001, True, 1.5, '10'])
def test_validate_file_size_rejects(size):
    """Test non-positive, oversized and non-integer sizes are rejected."""
    with pytest.raises(ValidationError):
        validate_file_size(size, 1000)


def test_validate_file_size_accepts_limit():
    """Test a size exactly at the limit is accepted."""
    validate_file_size(1000, 1000)


def test_sanitize_file_name():
    """Test whitespace and path-control characters are replaced."""
    assert sanitize_file_name('my report?.pdf') == 'my_report_.pdf'
    assert sanitize_file_name('a/b\\c.txt') == 'a_b_c.txt'


def test_build_object_key_is_namespaced():
    """Test keys start with the owner id and keep the sanitized name."""
    key = build_object_key(42, 'a b.pdf')

    assert re.fullmatch(r'42/\d{8}T\d{12}[0-9a-f]{8}_a_b\.pdf', key)


def test_build_object_key_is_unique():
    """Test same-name uploads get distinct keys."""
    assert build_object_key(1, 'x.pdf') != build_object_key(1, 'x.pdf')


def test_validate_object_key_valid():
    """Test valid object key passes validation."""
    validate_object_key(1, '1/20260101T000000000000abcdef01_file.txt')


def test_validate_object_key_foreign_namespace():
    """Test a key of another user is rejected with a distinct code."""
    with pytest.raises(ValidationError) as exc_info:
        validate_object_key(1, '2/file.txt')

    assert exc_info.value.code == 'foreign_namespace'


@pytest.mark.parametrize('key', [
    '',
    '/1/file.txt',
    '1',
    '1/',
    '1/../2/file.txt',
    '1/./file.txt',
    '1//file.txt',
    '1\\file.txt',
])
def test_validate_object_key_invalid_structure(key):
    """Test malformed keys are rejected."""
    with pytest.raises(ValidationError) as exc_info:
        validate_object_key(1, key)

    assert exc_info.value.code != 'foreign_namespace'
