"""Help command implementation for showing available commands."""

from typing import List

from ..command_proxy import Command
from ..session import AssistantSession


class HelpCommand(Command):
    """Command to show help information."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        """Show help information."""

        if args and args[0] != "":
            # Show help for specific command
            return self._show_command_help(args[0].lstrip("/"), session)
        else:
            # Show general help
            return self._show_general_help()

    def _show_general_help(self) -> str:
        """Show general help with all available commands."""
        help_text = """Shellmind - Natural language to shell commands

USAGE:
  shellmind <natural language>  - Ask for a command
  shellmind /<command>          - Run a built-in command
  shellmind                     - Start an interactive session

AVAILABLE COMMANDS:
  /help [command]             - Show help (this message)
  /clear, /reset              - Forget the conversation so far
  /history                    - Show the remembered conversation
  /model [options]            - Show or switch the Gemini model
  /config [options]           - Show or change configuration
  /exit, /quit                - Leave the interactive session

EXAMPLES:
  shellmind find files larger than 100MB in my home directory
  shellmind /model set gemini-1.5-pro
  shellmind /config set api_type streaming

GETTING STARTED:
  1. Set API key: export GEMINI_API_KEY="your-key"
  2. Try: shellmind list the ten biggest files here
  3. Or: shellmind /help config

For command-specific help: /help <command>"""

        return help_text

    def _show_command_help(self, command_name: str, session: AssistantSession) -> str:
        """Show help for a specific command."""
        # Import here to avoid circular imports
        from ..command_proxy import CommandProxy

        proxy = CommandProxy(session)
        command_help = proxy.get_command_help(command_name)

        if command_help:
            return f"Help for /{command_name}:\n\n{command_help}"
        else:
            available_commands = ", ".join(proxy.get_available_commands())
            return f"Unknown command: /{command_name}\n\nAvailable commands: {available_commands}\n\nUse '/help' for full help."

    def get_help(self) -> str:
        """Get help text for the help command."""
        return """Show help information:
  /help                    - Show general help and all commands
  /help <command>          - Show help for specific command

Examples:
  /help                    - Show this help
  /help model              - Show help for model command
  /help config             - Show help for config command"""
