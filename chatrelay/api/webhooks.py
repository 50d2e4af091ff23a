from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response
from fastapi.responses import PlainTextResponse

from chatrelay.application.dto.webhook_event import WebhookEventDTO
from chatrelay.application.exceptions import MalformedEvent
from chatrelay.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from chatrelay.core.config import settings
from chatrelay.infrastructure.whatsapp.webhook_verify import verify_post_signature, verify_subscription
from chatrelay.wiring.dependencies import get_handle_incoming_message_use_case


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/webhook")
def verify_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    challenge = verify_subscription(hub_mode, hub_verify_token, hub_challenge, settings.WEBHOOK_VERIFY_TOKEN)
    if challenge is None:
        raise HTTPException(status_code=403, detail="Verification failed")
    return PlainTextResponse(challenge)


@router.post("/webhook")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    use_case: HandleIncomingMessageUseCase = Depends(get_handle_incoming_message_use_case),
) -> Response:
    body = await request.body()
    signature = request.headers.get("X-Hub-Signature-256")
    if not verify_post_signature(body, signature, settings.WHATSAPP_APP_SECRET):
        return Response(status_code=403)

    # Anything unusable is acknowledged and dropped so the platform does not redeliver it.
    try:
        event = WebhookEventDTO.from_body(body)
    except MalformedEvent as e:
        logger.warning("Malformed webhook body ignored", extra={"error": str(e)})
        return Response(status_code=200)

    messages = event.extract_messages()
    if not messages:
        logger.info("Webhook delivery without text messages ignored")
        return Response(status_code=200)

    logger.info("Webhook received", extra={"reason": f"message_count={len(messages)}"})
    for message in messages:
        background_tasks.add_task(use_case.handle, message)

    return Response(status_code=200)
