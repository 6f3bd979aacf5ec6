"""
Shared Kernel

Base classes and interval helpers shared across the availability and
booking contexts. Nothing here touches the database.
"""
