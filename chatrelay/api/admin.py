from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse

from chatrelay.api.schemas import (
    DirectionSchema,
    MessageSchema,
    SenderPresenceListSchema,
    SenderPresenceSchema,
    ThreadSummaryListSchema,
    ThreadSummarySchema,
    TranscriptSchema,
)
from chatrelay.application.exceptions import DeliveryError, StorageError
from chatrelay.application.use_cases.send_reply import ReplyNotRecorded, SendReplyUseCase
from chatrelay.application.use_cases.thread_views import ThreadViewsUseCase
from chatrelay.wiring.dependencies import get_send_reply_use_case, get_thread_views_use_case


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/admin", response_model=ThreadSummaryListSchema)
def list_threads(views: ThreadViewsUseCase = Depends(get_thread_views_use_case)):
    try:
        summaries = views.summaries()
    except StorageError as e:
        logger.error("Thread summaries unavailable", extra={"error": str(e)})
        raise HTTPException(status_code=503, detail="Thread store unavailable")

    return ThreadSummaryListSchema(
        threads=[
            ThreadSummarySchema(
                sender=s.sender,
                last_message_body=s.last_message_body,
                last_message_at=s.last_message_at,
            )
            for s in summaries
        ]
    )


@router.get("/admin/senders", response_model=SenderPresenceListSchema)
def list_senders(views: ThreadViewsUseCase = Depends(get_thread_views_use_case)):
    try:
        records = views.senders()
    except StorageError as e:
        logger.error("Sender list unavailable", extra={"error": str(e)})
        raise HTTPException(status_code=503, detail="Thread store unavailable")

    return SenderPresenceListSchema(
        senders=[
            SenderPresenceSchema(sender=p.sender, first_seen_at=p.first_seen_at, last_active_at=p.last_active_at)
            for p in records
        ]
    )


@router.get("/chat/{sender}", response_model=TranscriptSchema)
def get_transcript(sender: str, views: ThreadViewsUseCase = Depends(get_thread_views_use_case)):
    try:
        messages = views.transcript(sender)
    except StorageError as e:
        logger.error("Transcript unavailable", extra={"sender": sender, "error": str(e)})
        raise HTTPException(status_code=503, detail="Thread store unavailable")

    return TranscriptSchema(
        sender=sender,
        messages=[
            MessageSchema(
                sender=m.sender,
                body=m.body,
                direction=DirectionSchema(m.direction.value),
                timestamp=m.timestamp,
            )
            for m in messages
        ],
    )


@router.post("/reply")
def manual_reply(
    to: str = Form(...),
    message: str = Form(...),
    send_reply: SendReplyUseCase = Depends(get_send_reply_use_case),
):
    to = to.strip()
    if not to or not message.strip():
        raise HTTPException(status_code=400, detail="Both 'to' and 'message' are required")

    try:
        send_reply.execute(to, message)
    except DeliveryError as e:
        logger.warning("Manual reply not delivered", extra={"sender": to, "error": str(e)})
        raise HTTPException(status_code=502, detail=f"Delivery failed: {e}")
    except ReplyNotRecorded as e:
        logger.error(
            "Reply sent but lost from thread",
            extra={"sender": to, "stage": "dispatched", "outcome": "aborted_no_persist", "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Reply delivered but could not be recorded")

    return RedirectResponse(url=f"/chat/{quote(to, safe='+')}", status_code=303)
