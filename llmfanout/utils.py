import asyncio
from typing import Any, List, Optional

import httpx

from .types import Attachment, ContentPart, ImageContent, Message, TextContent, Turn

VALID_ROLES = ("system", "user", "assistant")

# =============================================================================
# Message Normalization
# =============================================================================

def normalize_messages(messages: Any) -> List[Turn]:
    """
    Coerce arbitrary input into an ordered list of turns.

    Never raises. Non-list input degrades to an empty conversation; every
    element of a list input produces exactly one turn.

    Args:
        messages (Any): Raw ``messages`` value from a request body.

    Returns:
        List[Turn]: Turns with a valid role and string content.
    """
    if not isinstance(messages, list):
        return []

    turns: List[Turn] = []
    for msg in messages:
        if isinstance(msg, dict):
            role = msg.get("role")
            content = msg.get("content")
        else:
            role, content = None, msg

        if role not in VALID_ROLES:
            role = "user"
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = str(content)

        turns.append({"role": role, "content": content})
    return turns


def find_last_user_index(turns: List[Turn]) -> int:
    """
    Locate the most recent user turn.

    Returns:
        int: Index of the last ``user`` turn, or -1 when there is none.
    """
    for idx in range(len(turns) - 1, -1, -1):
        if turns[idx].get("role") == "user":
            return idx
    return -1


# =============================================================================
# Attachment Helpers
# =============================================================================

def is_image_attachment(att: Any) -> bool:
    """
    Check that an attachment is a well-formed inline image.

    Both ``mime`` and ``data`` must be strings and ``data`` must be non-empty.
    """
    return (
        isinstance(att, dict)
        and isinstance(att.get("mime"), str)
        and isinstance(att.get("data"), str)
        and len(att["data"]) > 0
    )


def valid_attachments(attachments: Any) -> List[Attachment]:
    """Filter an arbitrary ``attachments`` value down to valid images."""
    if not isinstance(attachments, list):
        return []
    return [
        {"mime": att["mime"], "data": att["data"]}
        for att in attachments
        if is_image_attachment(att)
    ]


def data_uri(att: Attachment) -> str:
    return f"data:{att['mime']};base64,{att['data']}"


def create_text_content(text: str) -> TextContent:
    """
    Create a standardized simple text content part.

    Args:
        text (str): The text message content.

    Returns:
        TextContent: A dictionary {"type": "text", "text": text}.
    """
    return {"type": "text", "text": text}


def create_image_content(att: Attachment) -> ImageContent:
    """
    Create an OpenAI-style image part referencing the attachment as a data URI.
    """
    return {"type": "image_url", "image_url": {"url": data_uri(att)}}


def build_openai_messages(
    turns: List[Turn],
    attachments: Optional[List[Attachment]] = None,
) -> List[Message]:
    """
    Build the chat/completions message list shared by OpenAI, xAI and OpenRouter.

    Attachments are merged into the last user turn only. Its content becomes
    a list of parts: a leading text part when the original text is not blank,
    then one image part per valid attachment. When neither exists the content
    degrades to a single empty text part. Without attachments, or without a
    user turn, the turns are passed through unchanged.

    Args:
        turns (List[Turn]): Normalized conversation.
        attachments (List[Attachment], optional): Request attachments.

    Returns:
        List[Message]: New message dicts; the input turns are not mutated.
    """
    converted: List[Message] = [{"role": t["role"], "content": t["content"]} for t in turns]
    if not attachments:
        return converted

    idx = find_last_user_index(turns)
    if idx == -1:
        return converted

    text = turns[idx]["content"]
    parts: List[ContentPart] = []
    if text.strip():
        parts.append(create_text_content(text))
    for att in valid_attachments(attachments):
        parts.append(create_image_content(att))

    converted[idx]["content"] = parts or [create_text_content("")]
    return converted


# =============================================================================
# Error & Logging Helpers
# =============================================================================

def redact_key(key: Any) -> str:
    """
    Mask an API key for logging.

    Keeps the first and last four characters; short keys are fully masked.
    """
    if not key or not isinstance(key, str):
        return ""
    if len(key) <= 8:
        return "******"
    return f"{key[:4]}...{key[-4:]}"


def _message_from_payload(payload: Any) -> Optional[str]:
    # Providers nest the human readable text under {"error": {"message": ...}}
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if isinstance(err, dict) and isinstance(err.get("message"), str) and err["message"]:
        return err["message"]
    if isinstance(err, str) and err:
        return err
    if isinstance(payload.get("message"), str) and payload["message"]:
        return payload["message"]
    return None


def extract_error_message(exc: BaseException) -> str:
    """
    Return the most specific error message available for a failed call.

    Prefers the structured message from the provider's error payload, then
    the SDK's own message, then ``str(exc)``. Timeouts are reported uniformly.

    Args:
        exc (BaseException): The exception raised by a provider call.

    Returns:
        str: A non-empty, human readable message.
    """
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)) or isinstance(
        exc.__cause__, httpx.TimeoutException
    ):
        return "Request timed out"

    # openai / anthropic SDKs expose the decoded body, google-genai the details
    for attr in ("body", "details"):
        msg = _message_from_payload(getattr(exc, attr, None))
        if msg:
            return msg

    if isinstance(exc, httpx.HTTPStatusError):
        try:
            msg = _message_from_payload(exc.response.json())
        except ValueError:
            msg = None
        if msg:
            return msg

    msg = getattr(exc, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(exc) or exc.__class__.__name__
