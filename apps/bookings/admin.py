"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_reference",
        "renter",
        "guest_email",
        "vehicle_make",
        "vehicle_model",
        "status",
        "pickup_at",
        "return_at",
        "created_at",
    )
    list_filter = ("status", "pickup_at", "return_at")
    search_fields = ("booking_reference", "renter__email", "guest_email", "guest_phone")
    readonly_fields = ("booking_reference", "created_at", "updated_at")
