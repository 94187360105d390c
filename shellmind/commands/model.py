"""Model command implementation for switching Gemini models."""

from typing import List

from ..command_proxy import Command
from ..config import get_model_options
from ..session import AssistantSession


class ModelCommand(Command):
    """Command to show or switch the model used by the session."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        """Show or switch the model."""

        if not args:
            return self._show_current_model(session)

        command = args[0].lower()

        if command == "list":
            return self._list_available_models(session)
        elif command == "set":
            if len(args) < 2:
                return "Usage: /model set <model_name>"
            return self._set_model(args[1], session)
        else:
            # Assume the argument is a model name
            return self._set_model(args[0], session)

    def _show_current_model(self, session: AssistantSession) -> str:
        """Show current model configuration."""
        output = "Current Model:\n"
        output += f"  Model: {session.params.model_name}\n"
        output += f"  Temperature: {session.params.temperature}\n"
        output += f"  API type: {session.config.api_type.value}\n"
        output += "\nUse '/model list' to see available models"
        return output

    def _list_available_models(self, session: AssistantSession) -> str:
        """List known Gemini models, marking the active one."""
        output = "Available Models:\n\n"
        for model in get_model_options():
            marker = "*" if model == session.params.model_name else "-"
            output += f"  {marker} {model}\n"
        output += "\nUsage:\n"
        output += "  /model set <model_name>    - Switch to specific model\n"
        return output.strip()

    def _set_model(self, model_name: str, session: AssistantSession) -> str:
        """Switch the session to a specific model."""
        model_name = model_name.strip()

        known = model_name in get_model_options()
        if not known and "gemini" not in model_name.lower():
            return f"Unknown model: {model_name}\nUse '/model list' to see available models"

        session.reconfigure(model_name=model_name)
        session.config.model_name = model_name

        if not known:
            return f"Switched to {model_name} (not in the known model list)"
        return f"Switched to {model_name}"

    def get_help(self) -> str:
        """Get help text for the model command."""
        return """Manage the Gemini model:
  /model                   - Show current model
  /model list              - List known models
  /model set <model>       - Switch to specific model

Examples:
  /model                   - Show current setup
  /model list              - See all options
  /model set gemini-1.5-pro - Switch to Gemini 1.5 Pro
  /model gemini-2.0-flash  - Switch to Gemini 2.0 Flash"""
