"""Scheduled jobs app package.

A durable queue of time-triggered work with bounded retries. Jobs are rows
with a ``run_at`` timestamp; a periodic Celery beat task picks up due rows,
counts the attempt before running the handler and records the outcome on
the row. Handlers perform the external side effects (payment links, host
report reminders) and must tolerate running more than once.
"""
