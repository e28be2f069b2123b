"""Streaming chat endpoint backed by the research agent."""

import asyncio
import json
import math
from collections.abc import AsyncIterator, Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.config import Config
from db.repository import (
    ChatOwnershipError,
    get_daily_request_count,
    insert_request_log,
    upsert_chat,
)
from orchestrator.agent_loop import AgentLoop
from orchestrator.agent_types import AgentAborted, AgentEvent
from ratelimit import AdmissionDecision, AdmissionGate
from server.dependencies import (
    AuthenticatedUser,
    get_admission_gate,
    get_agent_loop,
    get_api_key,
    get_config,
    get_session_factory,
)
from server.schemas.requests import ChatRequest
from server.utils import (
    get_chat_title,
    normalize_message,
    response_message_to_ui,
    to_model_messages,
)
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Chat"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"

# Agent tasks outlive the request handler; keep strong references until they finish
_running_tasks: set[asyncio.Task] = set()


def _rate_limit_headers(decision: AdmissionDecision) -> dict[str, str]:
    return {
        "Retry-After": str(math.ceil(decision.retry_after_ms / 1000)),
        "X-RateLimit-Remaining": str(decision.result.remaining),
        "X-RateLimit-Reset": str(decision.result.reset_time),
    }


def _encode(event: AgentEvent) -> str:
    return json.dumps(event.to_dict(), ensure_ascii=False, default=str) + "\n"


async def _stream_agent(
    *,
    agent: AgentLoop,
    session_factory: Callable[[], Session],
    user: AuthenticatedUser,
    chat_id: str,
    messages: list[dict[str, Any]],
) -> AsyncIterator[str]:
    queue: asyncio.Queue[AgentEvent | None] = asyncio.Queue()
    cancel_event = asyncio.Event()

    async def run_agent() -> None:
        try:
            result = await agent.run(
                to_model_messages(messages),
                cancel_event=cancel_event,
                on_event=queue.put_nowait,
            )
            updated = messages + [response_message_to_ui(m) for m in result.response_messages]
            await asyncio.to_thread(_persist_chat, session_factory, user.user_id, chat_id, updated)
        except AgentAborted:
            logger.info("Chat stream cancelled by client", extra={"extra_fields": {"chat_id": chat_id}})
        except Exception as e:
            logger.error(
                f"Chat agent failed: {e}",
                exc_info=True,
                extra={"extra_fields": {"chat_id": chat_id, "error_type": type(e).__name__}},
            )
            queue.put_nowait(AgentEvent("error", {"error": str(e) or type(e).__name__}))
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run_agent())
    _running_tasks.add(task)
    task.add_done_callback(_running_tasks.discard)

    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            yield _encode(event)
    finally:
        if not task.done():
            cancel_event.set()


def _persist_chat(
    session_factory: Callable[[], Session],
    user_id: str,
    chat_id: str,
    messages: list[dict[str, Any]],
) -> None:
    with session_factory() as db:
        upsert_chat(
            db,
            user_id=user_id,
            chat_id=chat_id,
            title=get_chat_title(messages),
            messages_list=messages,
        )
        db.commit()


def _daily_request_count(session_factory: Callable[[], Session], user_id: str) -> int:
    with session_factory() as db:
        return get_daily_request_count(db, user_id)


def _start_chat(
    session_factory: Callable[[], Session],
    user_id: str,
    chat_id: str,
    is_new_chat: bool,
    messages: list[dict[str, Any]],
) -> None:
    """
    Log the request and, for new chats, store the conversation so far.

    New chats are stored up front so they survive a cancelled or failed stream.

    Raises:
        ChatOwnershipError: If chat_id belongs to another user
        IntegrityError: If the chat could not be stored
    """
    with session_factory() as db:
        try:
            insert_request_log(db, user_id)
            if is_new_chat:
                upsert_chat(
                    db,
                    user_id=user_id,
                    chat_id=chat_id,
                    title=get_chat_title(messages),
                    messages_list=messages,
                )
            db.commit()
        except (ChatOwnershipError, IntegrityError):
            db.rollback()
            raise


@router.post("/chat")
async def chat(
    body: ChatRequest,
    user: AuthenticatedUser = Depends(get_api_key),
    config: Config = Depends(get_config),
    gate: AdmissionGate = Depends(get_admission_gate),
    agent: AgentLoop = Depends(get_agent_loop),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """
    Answer the conversation with the research agent.

    Streams newline-delimited JSON events: step-start, text, tool-call,
    tool-result, then finish (or error). The rate-limit hit is only recorded
    once every other check has passed and the agent is about to start.
    """
    decision = await gate.check(user.user_id)
    if not decision.admitted:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too Many Requests",
            headers=_rate_limit_headers(decision),
        )

    messages = [normalize_message(m.model_dump(exclude_none=True)) for m in body.messages]
    if not to_model_messages(messages):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Conversation has no text messages",
        )

    daily_limit = config.REQUESTS_PER_DAY_LIMIT
    if not user.is_admin and daily_limit > 0:
        request_count = await asyncio.to_thread(_daily_request_count, session_factory, user.user_id)
        if request_count >= daily_limit:
            logger.warning(
                "Daily request limit reached",
                extra={"extra_fields": {"user_id": user.user_id, "limit": daily_limit}},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too Many Requests",
            )

    try:
        await asyncio.to_thread(
            _start_chat,
            session_factory,
            user.user_id,
            body.chatId,
            body.isNewChat,
            messages,
        )
    except ChatOwnershipError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except IntegrityError as e:
        logger.error(
            f"Could not store chat {body.chatId}: {e}",
            extra={"extra_fields": {"chat_id": body.chatId, "user_id": user.user_id}},
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Chat could not be stored") from e

    await gate.record(user.user_id, decision)

    return StreamingResponse(
        _stream_agent(
            agent=agent,
            session_factory=session_factory,
            user=user,
            chat_id=body.chatId,
            messages=messages,
        ),
        media_type=NDJSON_MEDIA_TYPE,
    )
