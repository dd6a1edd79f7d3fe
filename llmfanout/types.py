from typing import Literal, List, Dict, Union, TypedDict

# =============================================================================
# Type Definitions
# =============================================================================

# Supported LLM providers
ProviderId = Literal["openai", "anthropic", "google", "xai", "openrouter"]

Role = Literal["system", "user", "assistant"]


class Turn(TypedDict):
    """
    One normalized message in a conversation.
    """
    role: Role
    content: str


class Attachment(TypedDict):
    """
    Inline image attachment, base64 encoded.
    """
    mime: str
    data: str


class ProviderConfig(TypedDict, total=False):
    """
    Per-request provider settings as sent by the client.

    An empty ``model`` triggers auto-resolution.
    """
    apiKey: str
    model: str


# =============================================================================
# Wire Content Parts (OpenAI-style request shape)
# =============================================================================

class TextContent(TypedDict):
    """
    Text content part for multimodal messages.
    """
    type: Literal["text"]
    text: str


class ImageUrlDetail(TypedDict):
    url: str


class ImageContent(TypedDict):
    """
    Image content part for multimodal messages (OpenAI format).
    """
    type: Literal["image_url"]
    image_url: ImageUrlDetail


ContentPart = Union[TextContent, ImageContent]
MessageContent = Union[str, List[ContentPart]]


class Message(TypedDict):
    """
    Chat message in the shared OpenAI / xAI / OpenRouter request shape.
    """
    role: Role
    content: MessageContent


# =============================================================================
# Results
# =============================================================================

class DispatchResult(TypedDict, total=False):
    """
    Uniform success/failure record for one provider call.

    Terminal results carry exactly one of ``text`` or ``error``.
    ``partial`` marks an interim observation in streaming mode.
    """
    ok: bool
    provider: str
    model: str
    text: str
    error: str
    ms: int
    partial: bool


class StreamFrame(TypedDict):
    """
    One newline-delimited JSON frame of the streaming relay.
    """
    type: Literal["result"]
    result: DispatchResult


ProviderConfigs = Dict[str, ProviderConfig]
