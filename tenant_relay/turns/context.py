# tenant_relay/turns/context.py
import logging
from typing import Mapping, Optional

from .models import InboundActivity, MessageContext

logger = logging.getLogger(__name__)

UNKNOWN_TENANT = "unknown-tenant"
UNKNOWN_COMPANY = "unknown-company"
UNKNOWN_USER = "unknown-user"
TENANT_ID_HEADER = "x-ms-tenant-id"


def resolve_tenant_id(activity: InboundActivity, headers: Mapping[str, str]) -> str:
    """conversation.tenantId, then channelData.tenant.id, then the tenant header."""
    if activity.conversation.tenant_id:
        return activity.conversation.tenant_id
    channel_data = activity.channel_data
    if channel_data and channel_data.tenant and channel_data.tenant.id:
        return channel_data.tenant.id
    header_value = headers.get(TENANT_ID_HEADER)
    if header_value:
        return header_value
    logger.warning("Turn: no tenant identity on activity; using placeholder tenant.")
    return UNKNOWN_TENANT


def resolve_company_name(activity: InboundActivity, default_company_name: Optional[str] = None) -> str:
    """Team name, then conversation name, then the configured default."""
    channel_data = activity.channel_data
    if channel_data and channel_data.team and channel_data.team.name:
        return channel_data.team.name
    if activity.conversation.name:
        return activity.conversation.name
    return default_company_name or UNKNOWN_COMPANY


def extract_message_context(
    activity: InboundActivity,
    headers: Mapping[str, str],
    default_company_name: Optional[str] = None
) -> MessageContext:
    # Starlette headers are case-insensitive; plain dicts are normalized here.
    if not hasattr(headers, "getlist"):
        headers = {k.lower(): v for k, v in headers.items()}
    return MessageContext(
        tenant_id=resolve_tenant_id(activity, headers),
        user_id=activity.from_account.id or UNKNOWN_USER,
        company_name=resolve_company_name(activity, default_company_name),
        utterance=activity.text or "",
    )
