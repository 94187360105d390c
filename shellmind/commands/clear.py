"""Clear command implementation for resetting the conversation."""

from typing import List

from ..command_proxy import Command
from ..session import AssistantSession


class ClearCommand(Command):
    """Command to forget the conversation so far."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        """Clear conversation history."""
        count = len(session.history)
        session.reset()
        if count:
            return f"Conversation cleared ({count} turns forgotten)."
        return "Conversation is already empty."

    def get_help(self) -> str:
        """Get help text for the clear command."""
        return """Start the conversation over:
  /clear                   - Forget every remembered turn
  /reset                   - Same as /clear

The system prompt is kept; only the back-and-forth is dropped."""
