# src/events/admin.py

import typing as t

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from solo.admin import SingletonModelAdmin

from . import models


class ParticipantLinkMixin:
    """Mixin to add a link to a participant."""

    def participant_link(self, obj: t.Any) -> str:
        url = reverse("admin:events_participant_change", args=[obj.participant_id])
        return format_html('<a href="{}">{}</a>', url, obj.participant.full_name)

    participant_link.short_description = "Participant"  # type: ignore[attr-defined]


class EventLinkMixin:
    """Mixin to add a link to an event."""

    def event_link(self, obj: t.Any) -> str:
        url = reverse("admin:events_event_change", args=[obj.event_id])
        return format_html('<a href="{}">{}</a>', url, obj.event.name)

    event_link.short_description = "Event"  # type: ignore[attr-defined]


@admin.register(models.SymposiumSettings)
class SymposiumSettingsAdmin(SingletonModelAdmin):  # type: ignore[misc]
    fieldsets = [
        (None, {"fields": ["name", ("day_one", "day_two")]}),
        ("Deadlines", {"fields": ["registration_closes_at", "events_close_at"]}),
    ]


@admin.register(models.Event)
class EventAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "event_type",
        "day",
        "available_seats",
        "total_seats",
        "partner_available_seats",
        "partner_seats",
        "is_active",
    ]
    list_filter = ["event_type", "day", "is_active"]
    search_fields = ["name"]
    # seat counters belong to the seat ledger
    readonly_fields = ["available_seats", "partner_available_seats", "created_at", "updated_at"]

    def save_model(self, request: t.Any, obj: models.Event, form: t.Any, change: bool) -> None:
        """New events start with every seat available."""
        if not change:
            obj.available_seats = obj.total_seats
            obj.partner_available_seats = obj.partner_seats
        super().save_model(request, obj, form, change)


class RegistrationInline(admin.TabularInline):
    model = models.Registration
    extra = 0
    fields = ["code", "event", "amount_paid", "payment_status", "attendance_status", "attended_at", "seat_held"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True


class PaymentInline(admin.TabularInline):
    model = models.Payment
    extra = 0
    fields = ["transaction_id", "amount", "status", "verified_by_admin", "verified_at", "verified_by", "source"]
    readonly_fields = fields
    can_delete = False


@admin.register(models.Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ["full_name", "email", "phone", "institution", "year_of_study", "cohort", "created_at"]
    list_filter = ["cohort", "year_of_study", "accommodation_required"]
    search_fields = ["full_name", "email", "phone", "roll_number", "registrations__code"]
    readonly_fields = ["cohort", "roll_number", "created_at", "updated_at"]
    inlines = [RegistrationInline, PaymentInline]

    def has_delete_permission(self, request: t.Any, obj: t.Any = None) -> bool:
        return False


@admin.register(models.Registration)
class RegistrationAdmin(admin.ModelAdmin, ParticipantLinkMixin, EventLinkMixin):
    list_display = ["code", "participant_link", "event_link", "amount_paid", "payment_status", "attendance_status"]
    list_filter = ["payment_status", "attendance_status", "event"]
    search_fields = ["code", "participant__full_name", "participant__email"]
    list_select_related = ["participant", "event"]
    readonly_fields = [
        "code",
        "participant",
        "event",
        "amount_paid",
        "payment_status",
        "attendance_status",
        "attended_at",
        "attendance_marked_by",
        "seat_held",
    ]


@admin.register(models.Payment)
class PaymentAdmin(admin.ModelAdmin, ParticipantLinkMixin):
    list_display = ["transaction_id", "participant_link", "amount", "status", "verified_by_admin", "source"]
    list_filter = ["status", "verified_by_admin", "source", "method"]
    search_fields = ["transaction_id", "participant__full_name", "participant__email"]
    list_select_related = ["participant"]
    readonly_fields = ["participant", "transaction_id", "amount", "verified_at", "verified_by", "source"]


@admin.register(models.PartnerStudent)
class PartnerStudentAdmin(admin.ModelAdmin):
    list_display = ["roll_number", "name", "is_registered", "registered_at"]
    list_filter = ["is_registered"]
    search_fields = ["roll_number", "name"]


@admin.register(models.Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ["title", "is_pinned", "created_by", "created_at"]
    search_fields = ["title", "body"]
