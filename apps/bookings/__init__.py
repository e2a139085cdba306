"""Bookings app package.

Holds the rental booking record that notification jobs may reference:
the renter account (if any), guest contact details for walk-in customers,
the vehicle and the pickup/return schedule used by reminder messages.
"""
