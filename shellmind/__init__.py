"""Shellmind - terminal assistant that turns natural language into shell commands.

The package centers on the model-communication core:

- ConversationHistory: bounded log of the conversation so far
- RequestBuilder: assembles each request from history and parameters
- Transports: Gemini over HTTP or over a streaming websocket channel
- ResponseAggregator: normalizes either reply into a single Answer
- AssistantSession: drives one request at a time, with retries

The typer CLI in ``main`` and the slash commands are thin layers on top.
"""

from .aggregator import Answer, ResponseAggregator
from .command_proxy import CommandProxy
from .config import ShellmindConfig
from .history import ConversationHistory, Role, Turn
from .main import app
from .request_builder import GenerationParameters, Request, RequestBuilder
from .session import AssistantSession, SessionState

__version__ = "0.1.0"

__all__ = [
    "app",
    "ShellmindConfig",
    "AssistantSession",
    "SessionState",
    "CommandProxy",
    "ConversationHistory",
    "Role",
    "Turn",
    "RequestBuilder",
    "Request",
    "GenerationParameters",
    "ResponseAggregator",
    "Answer",
]
