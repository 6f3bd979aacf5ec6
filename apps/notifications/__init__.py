"""Notifications package.

Customer-facing email for the booking pipeline: balance payment links, host
report reminders and cancellation notices. Sending is best-effort; every
helper reports success as a boolean and logs failures.
"""
