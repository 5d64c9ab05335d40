import json
import typing as t

from django.contrib import admin
from django.db.models import Count, Max, QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from . import models


def _pre(value: t.Any) -> str:
    if not value:
        return "-"
    text = value if isinstance(value, str) else json.dumps(value, indent=2)
    return format_html("<pre>{}</pre>", text)


class ErrorOccurrenceInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.ErrorOccurrence
    extra = 0
    can_delete = False
    readonly_fields = ["timestamp"]
    fields = ["timestamp"]
    max_num = 0


@admin.register(models.Error)
class ErrorAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    """Tracked internal errors, most frequent first."""

    list_display = ["path", "server_version", "occurrence_count", "last_seen", "issue_solved"]
    list_filter = ["server_version", "issue_solved"]
    search_fields = ["path", "traceback", "md5"]
    fields = [
        "md5",
        "path",
        "server_version",
        "issue_url",
        "issue_solved",
        "traceback_display",
        "json_payload_display",
        "request_metadata_display",
    ]
    readonly_fields = [
        "md5",
        "path",
        "server_version",
        "traceback_display",
        "json_payload_display",
        "request_metadata_display",
    ]
    inlines = [ErrorOccurrenceInline]
    actions = ["mark_solved"]

    def get_queryset(self, request: HttpRequest) -> QuerySet[models.Error]:
        return (
            super()
            .get_queryset(request)
            .annotate(num_occurrences=Count("occurrences"), last_occurrence=Max("occurrences__timestamp"))
            .order_by("-num_occurrences")
        )

    @admin.display(description="Occurrences", ordering="num_occurrences")
    def occurrence_count(self, obj: models.Error) -> int:
        return obj.num_occurrences  # type: ignore[attr-defined,no-any-return]

    @admin.display(description="Last seen", ordering="last_occurrence")
    def last_seen(self, obj: models.Error) -> t.Any:
        return obj.last_occurrence  # type: ignore[attr-defined]

    @admin.display(description="Traceback")
    def traceback_display(self, obj: models.Error) -> str:
        return _pre(obj.traceback)

    @admin.display(description="JSON payload")
    def json_payload_display(self, obj: models.Error) -> str:
        return _pre(obj.json_payload)

    @admin.display(description="Request metadata")
    def request_metadata_display(self, obj: models.Error) -> str:
        return _pre(obj.request_metadata)

    @admin.action(description="Mark selected errors as solved")
    def mark_solved(self, request: HttpRequest, queryset: QuerySet[models.Error]) -> None:
        updated = queryset.update(issue_solved=True)
        self.message_user(request, f"{updated} error(s) marked as solved.")

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False
