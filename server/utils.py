"""Shared utilities for FastAPI routes."""

import json
import uuid
from collections.abc import Mapping
from typing import Any

DEFAULT_CHAT_TITLE = "New Chat"
MAX_TITLE_CHARS = 100
SENSITIVE_HEADERS = {"x-api-key", "authorization"}


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted


def normalize_message(message: dict[str, Any]) -> dict[str, Any]:
    """
    Ensure a UI message has a `parts` list.

    String `content` becomes one text part, list `content` is taken as the
    parts, anything else yields an empty list.
    """
    if message.get("parts"):
        return message

    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return {**message, "parts": [{"type": "text", "text": content}]}
    if isinstance(content, list) and content:
        return {**message, "parts": content}
    return {**message, "parts": []}


def message_text(message: dict[str, Any]) -> str:
    texts = [
        part.get("text", "")
        for part in message.get("parts") or []
        if part.get("type") == "text" and part.get("text")
    ]
    return "\n".join(texts)


def get_chat_title(messages: list[dict[str, Any]]) -> str:
    """Title from the first user message's first text part."""
    first_user = next((m for m in messages if m.get("role") == "user"), None)
    if first_user is None:
        return DEFAULT_CHAT_TITLE

    text_part = next(
        (p for p in first_user.get("parts") or [] if p.get("type") == "text" and "text" in p),
        None,
    )
    title = (text_part or {}).get("text", "").strip()
    if not title:
        return DEFAULT_CHAT_TITLE
    return f"{title[:MAX_TITLE_CHARS]}..." if len(title) > MAX_TITLE_CHARS else title


def to_model_messages(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """UI messages -> chat-completions messages; tool-role and empty messages are dropped."""
    model_messages = []
    for message in messages:
        if message.get("role") == "tool":
            continue
        text = message_text(message)
        if not text:
            continue
        model_messages.append({"role": message["role"], "content": text})
    return model_messages


def response_message_to_ui(message: dict[str, Any]) -> dict[str, Any]:
    """Chat-completions message produced by the agent -> persisted UI message."""
    if message["role"] == "tool":
        try:
            result = json.loads(message.get("content") or "null")
        except ValueError:
            result = message.get("content")
        parts = [{"type": "tool-result", "toolCallId": message.get("tool_call_id"), "result": result}]
        return {"id": str(uuid.uuid4()), "role": "tool", "parts": parts}

    parts: list[dict[str, Any]] = []
    if message.get("content"):
        parts.append({"type": "text", "text": message["content"]})
    for call in message.get("tool_calls") or []:
        parts.append(
            {
                "type": "tool-call",
                "toolCallId": call["id"],
                "toolName": call["function"]["name"],
                "args": call["function"]["arguments"],
            }
        )
    return {"id": str(uuid.uuid4()), "role": message["role"], "parts": parts}
