# tenant_relay/notifications/__init__.py
"""New-tenant notification sinks."""

from .sinks import (
    AbstractNotificationSink,
    LoggingNotificationSink,
    WebhookNotificationSink,
    render_new_tenant_message,
)

__all__ = [
    "AbstractNotificationSink",
    "LoggingNotificationSink",
    "WebhookNotificationSink",
    "render_new_tenant_message",
]
