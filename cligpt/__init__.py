"""cligpt: a command-line chat client for OpenAI-style completion endpoints."""

from .config import ConfigStore
from .errors import (
    ChatError,
    ConfigError,
    ConfigUnavailable,
    ConfigWriteFailure,
    GatewayError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from .gateway import ChatGateway, Result
from .history import ConversationHistory, ConversationTurn
from .request import build_messages
from .session import SessionLoop, State

__all__ = [
    "ChatError",
    "ChatGateway",
    "ConfigError",
    "ConfigStore",
    "ConfigUnavailable",
    "ConfigWriteFailure",
    "ConversationHistory",
    "ConversationTurn",
    "GatewayError",
    "ProtocolError",
    "Result",
    "SessionLoop",
    "State",
    "TransportError",
    "ValidationError",
    "build_messages",
]
