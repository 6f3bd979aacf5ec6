"""Bookings app package.

This app encapsulates the booking domain: the booking model, its
lifecycle state machine, the audit trail and the services that move a
booking from request to closed review. Availability is re-checked inside
database transactions whenever a booking takes or moves its window.
"""
