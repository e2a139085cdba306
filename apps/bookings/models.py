"""Booking domain models for RentalHub."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """Бронирование автомобиля арендатором или гостем без аккаунта."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    booking_reference = models.CharField(max_length=16, unique=True, editable=False)

    # Контакты гостя, если бронирование сделано без регистрации
    guest_name = models.CharField(max_length=150, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=32, blank=True)

    vehicle_make = models.CharField(max_length=64, blank=True)
    vehicle_model = models.CharField(max_length=64, blank=True)

    pickup_at = models.DateTimeField()
    return_at = models.DateTimeField()
    pickup_location = models.CharField(max_length=255, blank=True)
    return_location = models.CharField(max_length=255, blank=True)

    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="GHS")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "pickup_at"], name="bookings_bo_status_6c1f0e_idx"),
            models.Index(fields=["status", "return_at"], name="bookings_bo_status_a2d47b_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Booking {self.booking_reference}"

    def clean(self) -> None:
        if self.pickup_at and self.return_at and self.return_at <= self.pickup_at:
            raise ValidationError(_("Return time must be after pickup time."))

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_reference:
            self.booking_reference = self.generate_booking_reference()
        self.clean()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_reference() -> str:
        return f"BK-{secrets.token_hex(4).upper()}"

    @property
    def vehicle_name(self) -> str:
        return f"{self.vehicle_make} {self.vehicle_model}".strip()

    @property
    def customer_name(self) -> str:
        if self.renter is not None:
            return self.renter.display_name
        return self.guest_name or "Valued Customer"
