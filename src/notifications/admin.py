from django.contrib import admin

from notifications.models import ReminderJob


@admin.register(ReminderJob)
class ReminderJobAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    """Admin for reminder jobs."""

    list_display = ["event", "user", "kind", "status", "attempts", "fire_at", "completed_at"]
    list_filter = ["kind", "status"]
    search_fields = ["event__name", "user__username", "user__email"]
    readonly_fields = ["attempts", "completed_at", "last_error", "created_at", "updated_at"]
    autocomplete_fields = ["event", "user"]
    date_hierarchy = "fire_at"
    ordering = ["-fire_at"]
