"""Wire protocol for the agent stream."""

from .commands import BrowserAction, CommandSender
from .messages import InboundMessage, MessageDecodeError, ProtocolError, decode_message

__all__ = [
    "BrowserAction",
    "CommandSender",
    "InboundMessage",
    "MessageDecodeError",
    "ProtocolError",
    "decode_message",
]
