"""Config command implementation for configuration management."""

from enum import Enum
from typing import List

from pydantic import ValidationError

from ..command_proxy import Command
from ..config import (
    ShellmindConfig,
    get_user_config_path,
    load_config_file,
    save_config,
)
from ..session import AssistantSession

# Keys that take effect on the running session immediately
GENERATION_KEYS = ("model_name", "temperature", "system_prompt")

SETTABLE_KEYS = (
    "api_key",
    "model_name",
    "temperature",
    "system_prompt",
    "context_window_size",
    "api_type",
    "api_base_url",
    "streaming_endpoint",
    "request_timeout_ms",
    "max_retries",
    "retry_backoff_ms",
    "retry_backoff_max_ms",
    "retry_partial_streams",
    "rich_output",
    "log_level",
)

# Key names used by older releases
KEY_ALIASES = {"grpc_endpoint": "streaming_endpoint"}


class ConfigCommand(Command):
    """Command to show and manage configuration."""

    def execute(self, args: List[str], session: AssistantSession) -> str:
        """Show or manage configuration."""

        if not args:
            return self._show_config(session)

        command = args[0].lower()

        if command == "show":
            return self._show_config(session)
        elif command == "set":
            if len(args) < 3:
                return "Usage: /config set <key> <value>"
            return self._set_value(args[1], " ".join(args[2:]), session)
        elif command == "save":
            return self._save_config(session)
        else:
            return f"Unknown config command: {command}\n{self.get_help()}"

    def _show_config(self, session: AssistantSession) -> str:
        """Show current configuration."""
        config = session.config
        output = "Shellmind Configuration:\n\n"

        output += "Model:\n"
        output += f"  API Key: {'✓ Set' if config.api_key else '✗ Not set'}\n"
        output += f"  Model name: {session.params.model_name}\n"
        output += f"  Temperature: {session.params.temperature}\n"
        output += f"  System prompt: {session.params.system_prompt or '(none)'}\n\n"

        output += "Transport:\n"
        output += f"  API type: {config.api_type.value}\n"
        output += f"  API base URL: {config.api_base_url}\n"
        output += f"  Streaming endpoint: {config.get_streaming_endpoint()}\n"
        output += f"  Request timeout: {config.request_timeout_ms}ms\n"
        output += f"  Max retries: {config.max_retries}\n"
        output += f"  Retry backoff: {config.retry_backoff_ms}ms (max {config.retry_backoff_max_ms}ms)\n"
        output += f"  Retry partial streams: {'Yes' if config.retry_partial_streams else 'No'}\n\n"

        output += "Conversation:\n"
        output += f"  Context window size: {config.context_window_size}\n"
        output += f"  Turns remembered: {len(session.history)}\n\n"

        output += "Output:\n"
        output += f"  Rich output: {'Yes' if config.rich_output else 'No'}\n"
        output += f"  Debug mode: {'Yes' if config.show_debug else 'No'}\n"
        output += f"  Log level: {config.log_level.value}\n"

        return output.strip()

    def _set_value(self, key: str, value: str, session: AssistantSession) -> str:
        """Set a configuration value and persist it for later sessions."""
        key = KEY_ALIASES.get(key.lower(), key.lower())
        if key not in SETTABLE_KEYS:
            return f"Unknown config key: {key}\nKeys: {', '.join(SETTABLE_KEYS)}"

        if key == "api_key":
            try:
                setattr(session.config, key, value)
            except ValidationError as e:
                return self._invalid(key, e)
            return "API key set for this session only; it is never written to disk."

        # The running session keeps its config; only the saved file changes
        config_path = get_user_config_path()
        stored = load_config_file(config_path)
        stored[key] = value
        try:
            updated = ShellmindConfig(**stored)
        except ValidationError as e:
            return self._invalid(key, e)

        if key in GENERATION_KEYS:
            session.reconfigure(**{key: getattr(updated, key)})
            applied = "Applied to this session"
        else:
            applied = "Takes effect in the next session"

        new_value = getattr(updated, key)
        shown = new_value.value if isinstance(new_value, Enum) else new_value
        if save_config(updated, config_path):
            return f"Set {key} = {shown}. {applied} and saved."
        return f"Set {key} = {shown}. {applied}, but saving failed."

    @staticmethod
    def _invalid(key: str, error: ValidationError) -> str:
        errors = [e for e in error.errors() if e["loc"] and e["loc"][0] == key]
        return f"Invalid value for {key}: {(errors or error.errors())[0]['msg']}"

    def _save_config(self, session: AssistantSession) -> str:
        """Save current configuration to file."""
        config_path = get_user_config_path()
        if save_config(session.config, config_path):
            return f"Configuration saved to {config_path}"
        return "Failed to save configuration"

    def get_help(self) -> str:
        """Get help text for the config command."""
        return """Show and manage configuration:
  /config                  - Show current configuration
  /config show             - Show current configuration (same as above)
  /config set <key> <val>  - Change a setting and save it
  /config save             - Save current config to file

Examples:
  /config set temperature 0.5
  /config set api_type streaming
  /config set system_prompt You only answer with zsh commands."""
