"""Availability app package.

Holds the venue calendar: manual availability blocks, blackout ranges and
the resolver that decides whether a requested date or time window can be
reserved. Committed bookings are read from the bookings app; only paid
reservations take capacity away from other customers.
"""
