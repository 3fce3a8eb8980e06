"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Custom storage backend for S3-compatible object stores (presigned
  URLs, object property lookups, idempotent deletes)
- File name, type and object key rules

Keep infrastructure concerns separate from business logic.
"""
