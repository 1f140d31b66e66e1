# tenant_relay/turns/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Annotated

from .context import extract_message_context
from .handler import TurnHandler
from .models import InboundActivity, TurnResult
from ..settings import settings

logger = logging.getLogger(__name__)

messages_router = APIRouter(prefix="/api", tags=["Messages"])


async def get_turn_handler(request: Request) -> TurnHandler:
    handler = getattr(request.app.state, "turn_handler", None)
    if handler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Turn handler unavailable.")
    return handler


@messages_router.post("/messages", response_model=TurnResult, response_model_exclude_none=True)
async def receive_message_endpoint(
    activity: InboundActivity,
    request: Request,
    handler: Annotated[TurnHandler, Depends(get_turn_handler)]
):
    """Handle one inbound channel activity. Non-message activities are acknowledged only."""
    context = extract_message_context(activity, request.headers, settings.default_company_name)
    if activity.type != "message":
        logger.debug(f"API: ignoring '{activity.type}' activity for tenant '{context.tenant_id}'.")
        return TurnResult(
            tenant_id=context.tenant_id,
            record_status="skipped",
            credentials_source="default",
        )
    logger.info(f"API: message from user '{context.user_id}' in tenant '{context.tenant_id}'.")
    return await handler.handle(context)
