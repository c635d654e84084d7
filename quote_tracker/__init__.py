"""
Quote Tracker.

Quote lifecycle and notification delivery: pricing, identifier issuance,
status workflow with audit history, and client/admin email notifications.
"""

__version__ = "1.0.0"
