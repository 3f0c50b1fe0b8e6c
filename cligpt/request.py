"""Assemble the ordered message list sent to the completion endpoint."""

import json

from .history import ConversationHistory

SYSTEM_TEMPLATE = "You are {personality}."

ROLES = ("system", "user", "assistant")

_encoder = None


def chat_message(role: str, content: str) -> dict:
    """Build one wire-format message."""
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}")
    return {"role": role, "content": content}


def system_message(personality: str) -> dict:
    return chat_message("system", SYSTEM_TEMPLATE.format(personality=personality))


def build_messages(
    personality: str, history: ConversationHistory, prompt: str
) -> list[dict]:
    """Return system message, then the replayed history, then the new prompt.

    Pure: the history is read, never modified. An empty prompt is passed
    through as-is.
    """
    messages = [system_message(personality)]
    messages.extend(history.to_message_sequence())
    messages.append(chat_message("user", prompt))
    return messages


def estimate_tokens(messages: list[dict]) -> int:
    """Count tokens across all messages using tiktoken.

    The encoding is fetched on first use, so this can raise OSError or
    ValueError when it is neither cached nor downloadable.
    """
    global _encoder
    if _encoder is None:
        import tiktoken

        _encoder = tiktoken.get_encoding("cl100k_base")
    total = 0
    for m in messages:
        total += len(_encoder.encode(m.get("content", "") or ""))
    # Per-message overhead for role and separators, ~4 tokens each
    total += 4 * len(messages)
    return total


def request_body(messages: list[dict], model: str, temperature: float | None) -> bytes:
    """Serialize the full request document."""
    body: dict = {"model": model, "messages": messages}
    if temperature is not None:
        body["temperature"] = temperature
    return json.dumps(body).encode("utf-8")
