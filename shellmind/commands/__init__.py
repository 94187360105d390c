"""Built-in slash commands."""

from .clear import ClearCommand
from .config import ConfigCommand
from .help import HelpCommand
from .model import ModelCommand

__all__ = [
    "ClearCommand",
    "ModelCommand",
    "HelpCommand",
    "ConfigCommand",
]
