"""Configuration management for Shellmind with multi-source loading."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ShellmindError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_STREAMING_ENDPOINT = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)
DEFAULT_SYSTEM_PROMPT = (
    "You are Shellmind, a helpful AI assistant that translates natural language "
    "into shell commands. You are running on a Linux system. Reply with the "
    "command first, followed by a short explanation when it is not obvious."
)


class LogLevel(str, Enum):
    """Available logging levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ApiType(str, Enum):
    """Wire protocol used to reach the model."""

    HTTP = "http"
    STREAMING = "streaming"


# Names used by older config files
_API_TYPE_ALIASES = {"rest": ApiType.HTTP, "grpc": ApiType.STREAMING}


class ShellmindConfig(BaseModel):
    """Main configuration class with validation and multi-source loading."""

    model_config = ConfigDict(validate_assignment=True, protected_namespaces=())

    # Model Configuration
    api_key: Optional[str] = Field(default=None, description="Gemini API key")
    model_name: str = Field(default="gemini-1.5-flash", description="Gemini model")
    temperature: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Sampling temperature"
    )
    system_prompt: Optional[str] = Field(
        default=DEFAULT_SYSTEM_PROMPT, description="Prompt sent ahead of every request"
    )

    # Transport Configuration
    api_type: ApiType = Field(default=ApiType.HTTP, description="Wire protocol")
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL, description="Base URL for HTTP requests"
    )
    streaming_endpoint: Optional[str] = Field(
        default=None, description="Websocket URL for streaming requests"
    )
    request_timeout_ms: int = Field(
        default=30000, gt=0, description="Timeout for each request attempt"
    )
    max_retries: int = Field(
        default=3, ge=0, description="Retries after a transient failure"
    )
    retry_backoff_ms: int = Field(
        default=500, ge=0, description="Delay before the first retry"
    )
    retry_backoff_max_ms: int = Field(
        default=8000, ge=0, description="Upper bound for the retry delay"
    )
    retry_partial_streams: bool = Field(
        default=False, description="Retry streams that were cut off mid-answer"
    )

    # History Configuration
    context_window_size: int = Field(
        default=8, ge=0, description="Turns of conversation sent as context"
    )

    # Output Configuration
    rich_output: bool = Field(default=True, description="Enable rich text formatting")
    show_debug: bool = Field(default=False, description="Show debug information")
    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Logging level")

    @field_validator("api_type", mode="before")
    @classmethod
    def normalize_api_type(cls, v):
        """Accept enum values case-insensitively plus the legacy names."""
        if isinstance(v, str):
            lowered = v.strip().lower()
            return _API_TYPE_ALIASES.get(lowered, lowered)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("api_key", mode="before")
    @classmethod
    def validate_api_key(cls, v):
        """Validate and sanitize the API key."""
        if v and isinstance(v, str):
            return v.strip()
        return v

    @field_validator("system_prompt", "streaming_endpoint", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def get_streaming_endpoint(self) -> str:
        """Get the websocket URL for the streaming transport."""
        return self.streaming_endpoint or DEFAULT_STREAMING_ENDPOINT

    def generation_parameters(self):
        """Build the generation parameters for a new session."""
        from .request_builder import GenerationParameters

        return GenerationParameters(
            model_name=self.model_name,
            temperature=self.temperature,
            system_prompt=self.system_prompt,
        )

    def validate_current_setup(self) -> bool:
        """Validate that an API key is configured."""
        return self.api_key is not None and len(self.api_key.strip()) > 0


def get_config_paths() -> List[Path]:
    """Get configuration file paths in priority order."""
    paths = []

    # User config directory
    paths.append(get_user_config_path())

    # System config directory
    if os.name == "posix":  # Unix/Linux/macOS
        paths.append(Path("/etc/shellmind/config.toml"))
    elif os.name == "nt":  # Windows
        paths.append(
            Path(os.environ.get("ProgramData", "C:/ProgramData"))
            / "shellmind"
            / "config.toml"
        )

    return paths


def get_user_config_path() -> Path:
    """Get the per-user configuration file path."""
    return Path.home() / ".shellmind" / "config.toml"


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load configuration from a TOML file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        # Unreadable config files are skipped in favor of the other sources
        logger.warning("Ignoring config file %s: %s", config_path, e)
    return {}


def load_environment_variables() -> Dict[str, Any]:
    """Load configuration from environment variables."""
    config = {}
    prefix = "SHELLMIND_"

    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix) :].lower()
            if config_key == "api_key":
                config[config_key] = value
                continue

            # Handle boolean values; "0" and "1" stay numeric for int fields
            if value.lower() in ("true", "yes", "on"):
                config[config_key] = True
            elif value.lower() in ("false", "no", "off"):
                config[config_key] = False
            else:
                # Try to convert to int, fallback to string
                try:
                    config[config_key] = int(value)
                except ValueError:
                    config[config_key] = value

    return config


def load_configuration(
    config_file: Optional[str] = None,
    debug: bool = False,
    model_override: Optional[str] = None,
    api_type_override: Optional[str] = None,
) -> ShellmindConfig:
    """Load configuration from multiple sources with priority handling.

    Priority order (highest to lowest):
    1. Function parameters (debug, model_override, api_type_override)
    2. Environment variables (SHELLMIND_*)
    3. Explicit config file (config_file)
    4. User config file (~/.shellmind/config.toml)
    5. System config file (/etc/shellmind/config.toml)
    6. Default values
    """
    merged_config: Dict[str, Any] = {}
    config_loaded_from_file = False

    # Load from config files (lowest priority)
    config_paths = get_config_paths()
    if config_file:
        # If specific config file provided, use it first
        config_paths.insert(0, Path(config_file))

    for path in reversed(config_paths):  # Reverse to maintain priority
        file_config = load_config_file(path)
        if file_config:
            logger.debug("Loaded configuration from %s", path)
            merged_config.update(file_config)
            config_loaded_from_file = True

    # Load from environment variables (higher priority)
    merged_config.update(load_environment_variables())

    # Apply function parameters (highest priority)
    if debug:
        merged_config["show_debug"] = True
        merged_config["log_level"] = LogLevel.DEBUG
    if model_override:
        merged_config["model_name"] = model_override
    if api_type_override:
        merged_config["api_type"] = api_type_override

    try:
        config = ShellmindConfig(**merged_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    # After creating config, check for the standard API key if not already set
    if not config.api_key:
        config.api_key = os.environ.get("GEMINI_API_KEY")

    # If no config file was loaded, save the defaults without any overrides
    if not config_loaded_from_file:
        save_config(ShellmindConfig())

    return config


def save_config(config: ShellmindConfig, config_path: Optional[Path] = None) -> bool:
    """Save configuration to file, leaving the API key out."""
    if config_path is None:
        config_path = get_user_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Convert config to dict, excluding None values and sensitive data
        config_dict = config.model_dump(
            mode="json", exclude_none=True, exclude={"api_key"}
        )
        # An empty prompt is how a disabled system prompt is stored
        if config.system_prompt is None:
            config_dict["system_prompt"] = ""

        with open(config_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)

        logger.debug("Saved configuration to %s", config_path)
        return True

    except OSError as e:
        logger.warning("Could not save configuration to %s: %s", config_path, e)
        return False


# Configuration validation and helper functions
class ConfigurationError(ShellmindError):
    """Configuration-related errors."""

    pass


def validate_api_setup(config: ShellmindConfig) -> None:
    """Validate that an API key is available."""
    if not config.validate_current_setup():
        raise ConfigurationError(
            "No API key configured. Set the GEMINI_API_KEY (or SHELLMIND_API_KEY) "
            "environment variable or add api_key to the config file."
        )


def get_model_options() -> List[str]:
    """Get known Gemini model options."""
    return [
        "gemini-1.5-flash",
        "gemini-1.5-flash-8b",
        "gemini-1.5-pro",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
        "gemini-2.0-flash-live-001",
    ]
