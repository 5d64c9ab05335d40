import uuid

import django.db.models.deletion
from django.db import migrations, models

import api.models


class Migration(migrations.Migration):
    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="Error",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("md5", models.CharField(editable=False, max_length=32, unique=True)),
                ("path", models.CharField(db_index=True, max_length=2048)),
                (
                    "server_version",
                    models.CharField(db_index=True, default=api.models.get_version, max_length=32),
                ),
                ("traceback", models.TextField()),
                ("payload", models.BinaryField(blank=True, null=True)),
                ("json_payload", models.JSONField(blank=True, null=True)),
                ("request_metadata", models.JSONField(blank=True, null=True)),
                ("issue_url", models.URLField(blank=True)),
                ("issue_solved", models.BooleanField(default=False)),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="ErrorOccurrence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "signature",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="occurrences", to="api.error"
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
    ]
