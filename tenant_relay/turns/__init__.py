# tenant_relay/turns/__init__.py
"""
Inbound message handling.

Turns a channel activity into a message context, refreshes the tenant
record and forwards the utterance to the conversational runtime.
"""

from .models import InboundActivity, MessageContext, ProviderCredentials, RuntimeOutput, TurnResult
from .context import extract_message_context
from .credentials import resolve_provider_credentials
from .runtime import AbstractRuntimeClient
from .handler import TurnHandler
from .endpoints import messages_router

__all__ = [
    "InboundActivity",
    "MessageContext",
    "ProviderCredentials",
    "RuntimeOutput",
    "TurnResult",
    "extract_message_context",
    "resolve_provider_credentials",
    "AbstractRuntimeClient",
    "TurnHandler",
    "messages_router",
]
