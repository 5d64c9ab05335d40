import typing as t

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from . import models


class UserLinkMixin:
    """Mixin to add a link to the related user."""

    def user_link(self, obj: t.Any) -> str:
        user = getattr(obj, "user", getattr(obj, "organiser", None))
        url = reverse("admin:accounts_campususer_change", args=[user.id])  # type: ignore[union-attr]
        return format_html('<a href="{}">{}</a>', url, user.username)  # type: ignore[union-attr]

    user_link.short_description = "User"  # type: ignore[attr-defined]


class TicketTypeInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.TicketType
    extra = 0
    fields = ["name", "price_id", "price", "currency", "quantity", "quantity_sold", "release_order"]
    readonly_fields = ["quantity_sold"]


@admin.register(models.Event)
class EventAdmin(UserLinkMixin, admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["name", "user_link", "start", "capacity", "is_paid", "is_deleted"]
    list_filter = ["is_paid", "is_deleted"]
    search_fields = ["name", "organiser__username", "organiser__email"]
    autocomplete_fields = ["organiser"]
    date_hierarchy = "start"
    inlines = [TicketTypeInline]


@admin.register(models.TicketType)
class TicketTypeAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["name", "event", "price", "currency", "quantity", "quantity_sold", "release_order"]
    search_fields = ["name", "event__name"]
    readonly_fields = ["quantity_sold"]
    autocomplete_fields = ["event"]


@admin.register(models.Registration)
class RegistrationAdmin(UserLinkMixin, admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = [
        "event",
        "user_link",
        "email",
        "external",
        "cancelled",
        "amount_paid",
        "amount_refunded",
        "created_at",
    ]
    list_filter = ["external", "cancelled"]
    search_fields = ["event__name", "user__username", "email", "checkout_session_id", "payment_intent_id"]
    readonly_fields = [
        "checkout_session_id",
        "payment_intent_id",
        "amount_paid",
        "amount_refunded",
        "currency",
        "cancelled_at",
        "created_at",
    ]
    autocomplete_fields = ["event", "user", "ticket_type"]


@admin.register(models.SettlementAccount)
class SettlementAccountAdmin(UserLinkMixin, admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = [
        "stripe_account_id",
        "user_link",
        "card_payments_enabled",
        "transfers_enabled",
        "payouts_enabled",
        "last_synced_at",
    ]
    search_fields = ["stripe_account_id", "organiser__username", "organiser__email"]
    readonly_fields = ["last_synced_at"]
