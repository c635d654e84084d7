"""
Notification delivery.

Provides functionality for:
- Rendering lifecycle emails
- Sending through a mail transport with retry and backoff
- Batched reminder sweeps for stale quotes
"""

from quote_tracker.services.notifications.dispatcher import (
    CreatedNotification,
    NotificationDispatcher,
    SweepResult,
    build_dispatcher,
)
from quote_tracker.services.notifications.mail_transport import (
    EmailMessage,
    LogTransport,
    MailTransport,
    ResendTransport,
    build_transport,
)
from quote_tracker.services.notifications.templates import RenderedTemplate, TemplateRenderer

__all__ = [
    "CreatedNotification",
    "NotificationDispatcher",
    "SweepResult",
    "build_dispatcher",
    "EmailMessage",
    "LogTransport",
    "MailTransport",
    "ResendTransport",
    "build_transport",
    "RenderedTemplate",
    "TemplateRenderer",
]
