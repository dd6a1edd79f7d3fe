from .cache import ModelCache
from .config import Settings, load_settings, configure_logging
from .dispatcher import Dispatcher, ConfigurationError
from .resolver import ModelResolver, pick_model
from .streaming import StreamingRelay, StreamCollector, encode_frame
from .types import Turn, Attachment, ProviderConfig, DispatchResult, StreamFrame, ProviderId
from .utils import normalize_messages, find_last_user_index, is_image_attachment
from .rich_llm_printer import RichPrinter, RichStreamPrinter

__all__ = [
    "Dispatcher",
    "ConfigurationError",
    "ModelCache",
    "ModelResolver",
    "pick_model",
    "StreamingRelay",
    "StreamCollector",
    "encode_frame",
    "Settings",
    "load_settings",
    "configure_logging",
    "Turn",
    "Attachment",
    "ProviderConfig",
    "DispatchResult",
    "StreamFrame",
    "ProviderId",
    "normalize_messages",
    "find_last_user_index",
    "is_image_attachment",
    "RichPrinter",
    "RichStreamPrinter",
]
