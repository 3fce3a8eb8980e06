"""URL configuration for the files API."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('csrf', views.csrf_token, name='csrf'),

    # Two-phase upload and the single-phase fallback
    path('uploads/credential', views.request_upload, name='upload-credential'),
    path('uploads/complete', views.complete_upload, name='upload-complete'),
    path('uploads/direct', views.direct_upload, name='upload-direct'),

    # Listings
    path('files', views.list_files, name='list'),
    path('files/search', views.search_files, name='search'),
    path('files/recent', views.recent_files, name='recent'),

    # Individual file operations
    path('files/<int:file_id>', views.file_detail, name='detail'),
    path('files/<int:file_id>/restore', views.restore_file, name='restore'),
    path('files/<int:file_id>/permanent', views.purge_file, name='purge'),
    path('files/<int:file_id>/view', views.view_file, name='view'),
    path('files/<int:file_id>/download', views.download_file, name='download'),

    path('trash', views.empty_trash, name='empty-trash'),
    path('storage', views.storage_summary, name='storage'),
    path('activity', views.activity_feed, name='activity'),
]
