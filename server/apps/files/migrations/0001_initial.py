import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import server.apps.files.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('blob', models.FileField(help_text='Object key in storage: {user_id}/{prefix}_{name}', max_length=512, upload_to='')),
                ('display_name', models.CharField(help_text='Human-visible file name, editable by rename', max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('mime_type', models.CharField(help_text='Content type reported by the object store', max_length=255)),
                ('starred', models.BooleanField(default=False)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('trashed_at', models.DateTimeField(blank=True, help_text='Set while the file is in the trash', null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-uploaded_at'],
                'indexes': [
                    models.Index(fields=['user', 'trashed_at', '-uploaded_at'], name='files_user_state_recent_idx'),
                    models.Index(fields=['user', '-trashed_at'], name='files_user_trashed_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'blob'), name='files_user_blob_unique'),
                    models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='files_size_bytes_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ActivityEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('upload', 'Upload'), ('view', 'View'), ('download', 'Download'), ('rename', 'Rename'), ('delete', 'Delete'), ('restore', 'Restore')], max_length=16)),
                ('file_name', models.CharField(help_text='Display name of the file when the action happened', max_length=255)),
                ('metadata', models.JSONField(blank=True, help_text='Extra details, e.g. old_name/new_name for renames', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('file', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='activity_events', to='files.file')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Activity Event',
                'verbose_name_plural': 'Activity Events',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['user', '-created_at'], name='activity_user_recent_idx'),
                    models.Index(fields=['file', 'action', '-created_at'], name='activity_file_action_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserQuota',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='quota', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('quota_bytes', models.BigIntegerField(default=server.apps.files.models.default_quota_bytes, help_text='Storage quota limit in bytes')),
                ('used_bytes', models.BigIntegerField(default=0, help_text='Currently used storage in bytes')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'User Quota',
                'verbose_name_plural': 'User Quotas',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quota_bytes__gte', 0)), name='quota_bytes_non_negative'),
                    models.CheckConstraint(condition=models.Q(('used_bytes__gte', 0)), name='used_bytes_non_negative'),
                ],
            },
        ),
    ]
