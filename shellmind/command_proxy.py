"""Command proxy system for handling slash-prefixed commands."""

import logging
import shlex
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .session import AssistantSession

logger = logging.getLogger(__name__)


class ExitRequested(Exception):
    """Raised by /exit to leave the interactive session."""

    pass


class Command(ABC):
    """Abstract base class for all commands."""

    @abstractmethod
    def execute(self, args: List[str], session: AssistantSession) -> str:
        """Execute the command with given arguments."""
        pass

    @abstractmethod
    def get_help(self) -> str:
        """Get help text for this command."""
        pass

    def validate_args(self, args: List[str]) -> bool:
        """Validate command arguments. Override if needed."""
        return True


class CommandProxy:
    """Main command proxy that routes slash commands to their handlers."""

    def __init__(self, session: AssistantSession):
        self.session = session
        self.commands = self._register_commands()

    def execute(self, command_line: str) -> str:
        """Execute a slash command."""
        # Remove leading slash and parse command
        command_line = command_line.lstrip().lstrip("/")

        if not command_line:
            return "No command specified. Use /help for available commands."

        # Parse command and arguments safely
        try:
            parts = shlex.split(command_line)
        except ValueError as e:
            return f"Error parsing command: {e}"

        if not parts:
            return "No command specified. Use /help for available commands."

        cmd = parts[0].lower()
        args = parts[1:]

        # Check if command exists
        if cmd not in self.commands:
            return f"Unknown command: /{cmd}\nUse /help for available commands."

        handler = self.commands[cmd]

        if not handler.validate_args(args):
            return f"Invalid arguments for /{cmd}\n{handler.get_help()}"

        logger.debug("Running /%s with %s", cmd, args)
        try:
            return handler.execute(args, self.session)
        except ExitRequested:
            raise
        except Exception as e:
            logger.debug("/%s failed", cmd, exc_info=True)
            return f"Command execution error: {e}"

    def _register_commands(self) -> Dict[str, Command]:
        """Register all available commands."""
        from .commands import ClearCommand, ConfigCommand, HelpCommand, ModelCommand

        return {
            "clear": ClearCommand(),
            "reset": ClearCommand(),
            "model": ModelCommand(),
            "help": HelpCommand(),
            "config": ConfigCommand(),
            "history": HistoryCommand(),
            "exit": ExitCommand(),
            "quit": ExitCommand(),
        }

    def get_available_commands(self) -> List[str]:
        """Get list of available command names."""
        return sorted(self.commands.keys())

    def get_command_help(self, command: str) -> Optional[str]:
        """Get help for a specific command."""
        if command in self.commands:
            return self.commands[command].get_help()
        return None


# History command for the turns the session currently holds
class HistoryCommand(Command):
    """Command to show the conversation context."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        turns = session.history.snapshot()
        if not turns:
            return "Conversation history is empty."

        output = f"Conversation context ({len(turns)}/{session.history.max_turns} turns):\n\n"
        for turn in turns:
            role = turn.role.value.upper()
            text = turn.text[:200] + "..." if len(turn.text) > 200 else turn.text
            output += f"[{role}] {text}\n\n"
        return output.strip()

    def get_help(self) -> str:
        return """Show the conversation context sent with each request:
  /history             - List the turns currently remembered"""


# Exit command
class ExitCommand(Command):
    """Command to exit the application."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        raise ExitRequested()

    def get_help(self) -> str:
        return "Exit the Shellmind interactive session."
