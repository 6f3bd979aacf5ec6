"""Clients for the remote services the venue relies on.

Each client wraps one fallible HTTP call and reports the outcome as a
``{"success": bool, ...}`` dictionary; network failures never escape as
exceptions so callers decide whether a failure is fatal.
"""
