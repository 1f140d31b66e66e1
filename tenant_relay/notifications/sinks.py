# tenant_relay/notifications/sinks.py
import logging
from abc import ABC, abstractmethod
from typing import Optional
import httpx

from ..tenants.errors import NotificationFailure
from ..tenants.models import NewTenantNotification

logger = logging.getLogger(__name__)


class AbstractNotificationSink(ABC):
    """Receives a fire-and-forget message when a tenant is first created."""

    @abstractmethod
    async def notify_new_tenant(self, notification: NewTenantNotification) -> None:
        pass

    async def teardown(self) -> None:
        pass


def render_new_tenant_message(notification: NewTenantNotification) -> str:
    lines = [
        "A new tenant started chatting with the bot.",
        "",
        f"Tenant ID:    {notification.tenant_id}",
        f"User ID:      {notification.user_id or 'unknown'}",
        f"Company name: {notification.company_name or 'unknown'}",
    ]
    if notification.email:
        lines.append(f"Email:        {notification.email}")
    lines.append(f"First seen:   {notification.created_at.isoformat()}")
    return "\n".join(lines)


class LoggingNotificationSink(AbstractNotificationSink):
    """Default sink when no mail relay is configured."""

    async def notify_new_tenant(self, notification: NewTenantNotification) -> None:
        logger.info(f"Notify: new tenant created:\n{render_new_tenant_message(notification)}")


class WebhookNotificationSink(AbstractNotificationSink):
    """
    Posts the new-tenant message as JSON to a mail relay webhook.

    The relay owns delivery; a non-2xx answer or a transport error raises
    ``NotificationFailure``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        webhook_url: str,
        mailbox: Optional[str] = None,
        owns_client: bool = False
    ):
        self._client = client
        self.webhook_url = webhook_url
        self.mailbox = mailbox
        self._owns_client = owns_client
        logger.info(f"WebhookNotificationSink initialized for {webhook_url}.")

    async def notify_new_tenant(self, notification: NewTenantNotification) -> None:
        payload = {
            "to": self.mailbox,
            "subject": f"New tenant: {notification.company_name or notification.tenant_id}",
            "text": render_new_tenant_message(notification),
            "tenant": notification.model_dump(mode="json"),
        }
        try:
            response = await self._client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationFailure(
                f"Mail relay answered {e.response.status_code} for tenant '{notification.tenant_id}'."
            ) from e
        except httpx.RequestError as e:
            raise NotificationFailure(
                f"Could not reach mail relay for tenant '{notification.tenant_id}': {e}"
            ) from e
        logger.info(f"Notify: new-tenant message for '{notification.tenant_id}' accepted by relay.")

    async def teardown(self) -> None:
        if self._owns_client:
            await self._client.aclose()
