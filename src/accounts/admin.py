"""Admin interface for accounts app."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from accounts.models import CampusUser


@admin.register(CampusUser)
class CampusUserAdmin(UserAdmin):  # type: ignore[type-arg]
    """Admin for campus users."""

    list_display = ["username", "email", "display_name", "institution", "is_organiser", "is_staff"]
    list_filter = ["is_organiser", "is_staff", "is_active", "institution"]
    search_fields = ["username", "email", "first_name", "last_name", "preferred_name", "institution"]
    fieldsets = (
        *UserAdmin.fieldsets,  # type: ignore[misc]
        ("Campus", {"fields": ("preferred_name", "institution", "is_organiser")}),
    )
    add_fieldsets = (
        *UserAdmin.add_fieldsets,
        ("Campus", {"fields": ("email", "institution", "is_organiser")}),
    )
