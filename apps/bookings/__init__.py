"""Bookings app package.

This app encapsulates the reservation core: the booking model, the slot
ledger that keeps per-slot windows from overlapping, pricing and the
command handlers that create bookings, record top-ups and change status.
Double booking is prevented with row locks and, on PostgreSQL, an
exclusion constraint over the blocking slot windows.
"""
