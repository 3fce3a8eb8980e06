"""Business logic layer for files app.

This package contains all business logic of the drive:
- Quota ledger (quota_operations)
- Two-phase and direct uploads (upload_operations)
- Rename, star and read URLs for active files (file_operations)
- Trash, restore and purge (trash_operations)
- Activity log (activity_operations)
- Listings, search and the recent view (query_operations)

All business logic should be implemented here, separate from
models (data layer), views (HTTP) and infrastructure (external systems).
"""
