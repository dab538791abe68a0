"""
Constants and configuration for Esmero.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

import os
import threading

from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
)

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# ============================================================================
# Model Defaults
# ============================================================================

#: Fallback model for completions that don't name one.
DEFAULT_MODEL = "gpt-4.1-mini"

#: Model used for the writing assistant's structured responses.
AGENT_MODEL = "gpt-4.1"

#: Cheap model used to rank folders and documents by title.
RELEVANCE_MODEL = "gpt-4.1-mini"

#: Model used to name documents from their content.
TITLE_MODEL = "gpt-4o-mini"

#: Default sampling temperature for completions.
DEFAULT_TEMPERATURE = 0.3

#: Default nucleus sampling value.
DEFAULT_TOP_P = 1.0

#: Default completion length cap.
DEFAULT_MAX_TOKENS = 2000

#: Per-request timeout (seconds) handed to the OpenAI SDK.
#: The SDK enforces it; nothing in the pipeline adds its own deadline.
DEFAULT_LLM_TIMEOUT = 60.0

#: Agent call sampling. Higher than default for creative writing assistance.
AGENT_TEMPERATURE = 0.7

#: Agent atomic response length cap.
AGENT_MAX_TOKENS = 2000

#: Agent streamed response length cap (streams carry larger diffs).
AGENT_STREAM_MAX_TOKENS = 4000

#: Relevance filter sampling and length cap (a short list of ids).
RELEVANCE_TEMPERATURE = 0.3
RELEVANCE_MAX_TOKENS = 200

#: Title generation sampling and length cap (2-4 words).
TITLE_TEMPERATURE = 0.7
TITLE_MAX_TOKENS = 20

# ============================================================================
# Context Assembly Limits
# ============================================================================

#: Number of most recent messages kept in the conversation context.
#: Older messages are dropped, not summarized.
MAX_RECENT_MESSAGES = 14

#: Number of messages kept when the conversation build itself fails.
FALLBACK_RECENT_MESSAGES = 8

#: Candidate count at or below which relevance filtering skips the LLM.
#: Also the cap on ids the LLM may return, and the size of the fallback set.
MAX_RELEVANT_WITHOUT_LLM = 5

#: Current page content longer than this is truncated in the prompt.
CURRENT_PAGE_MAX_CHARS = 3000

#: Characters of each related document shown in the prompt.
DOCUMENT_SNIPPET_MAX_CHARS = 200

#: Marker appended to a truncated current page.
CONTENT_TRUNCATED_MARKER = "... [content truncated]"

#: Identity of the current page when the canvas holds an unsaved document.
BLANK_CANVAS_ID = "new"
BLANK_CANVAS_TITLE = "Blank Canvas"
UNTITLED_DOCUMENT_TITLE = "Untitled"

# ============================================================================
# User-facing Fallback Strings
# ============================================================================

#: Returned by string completions when the provider fails.
APOLOGY_MESSAGE = "I apologize, but I encountered an error processing your request. Please try again."

#: Atomic agent response when anything in the pipeline fails.
HANDLER_ERROR_MESSAGE = "I encountered an unexpected error. Please try again."
HANDLER_ERROR_REASONING = "Handler error occurred"

#: Streaming error payloads.
STREAM_PARSE_ERROR = "Failed to parse agent response"
STREAM_INTERNAL_ERROR = "Internal server error"

#: Title used when generation fails or returns nothing.
DEFAULT_TITLE = "Untitled"

# ============================================================================
# Stream Event Types
# ============================================================================

#: One completed diff chunk, emitted as soon as it is parseable.
EVENT_TYPE_CHUNK = "chunk"

#: Final response text and reasoning.
EVENT_TYPE_MESSAGE = "message"

#: Terminal event after a successful message.
EVENT_TYPE_DONE = "done"

#: Terminal failure event.
EVENT_TYPE_ERROR = "error"

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of agent turn log backups to retain during rotation.
LOG_BACKUP_COUNT_TURNS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for user input/response.
LOG_PREVIEW_LENGTH = 50

#: Length of generated logger instance IDs (hex characters).
LOGGER_ID_LENGTH = 8

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================

#: Valid environment names for configuration loading
Environment = Literal["development", "production", "test"]


def _get_env_files() -> list[Path]:
    """Determine which .env files to load based on APP_ENV.

    Load order (later files override earlier - pydantic-settings last-wins):
    1. .env (base defaults) - lowest priority
    2. .env.{environment} (environment-specific overrides)
    3. .env.local (local developer overrides, gitignored) - highest priority

    Returns:
        List of Path objects for env files that exist.
    """
    env_name = os.getenv("APP_ENV", "development").lower()
    if env_name not in ("development", "production", "test"):
        env_name = "development"

    candidates = [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env_name}",
        PROJECT_ROOT / ".env.local",
    ]
    return [p for p in candidates if p.exists()]


def _reload_dotenv_into_environ() -> None:
    """Load the dotenv chain into os.environ so environment-specific files win.

    Must be called BEFORE Settings() instantiation.
    """
    from dotenv import load_dotenv

    for env_file in _get_env_files():
        load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    """Environment settings with validation and environment-specific file support.

    Configuration priority (highest to lowest):
    1. Values passed to Settings() constructor
    2. Environment variables
    3. .env.local > .env.{APP_ENV} > .env (dotenv files, last wins)

    Supports both base OpenAI and Azure OpenAI providers.
    """

    # Environment identification
    app_env: Environment = Field(default="development", description="Application environment")

    # API provider selection
    api_provider: str = Field(default="openai", description="API provider: 'openai' or 'azure'")

    # Base OpenAI settings (required if provider=openai)
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for authentication")

    # Azure OpenAI settings (required if provider=azure)
    azure_openai_api_key: str | None = Field(default=None, description="Azure OpenAI API key for authentication")
    azure_openai_endpoint: HttpUrl | None = Field(default=None, description="Azure OpenAI endpoint URL")
    azure_openai_api_version: str = Field(default="2024-10-21", description="Azure OpenAI API version")

    # Debug and logging
    debug: bool = Field(default=False, description="Enable debug logging")
    enable_content_logging: bool = Field(
        default=False,
        description="Include (redacted) message previews in agent turn logs",
    )

    # Completion defaults
    default_model: str = Field(default=DEFAULT_MODEL, description="Model used when a call names none")
    agent_model: str = Field(default=AGENT_MODEL, description="Model for writing assistant responses")
    relevance_model: str = Field(default=RELEVANCE_MODEL, description="Model for folder/document relevance")
    title_model: str = Field(default=TITLE_MODEL, description="Model for document title generation")
    default_temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    default_top_p: float = Field(default=DEFAULT_TOP_P, gt=0.0, le=1.0)
    default_max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    llm_timeout: float = Field(default=DEFAULT_LLM_TIMEOUT, gt=0.0, description="Per-call timeout (seconds)")

    # HTTP client timeouts (streaming responses can pause between tokens)
    http_read_timeout: float = Field(default=600.0, description="HTTP read timeout for streaming (seconds)")

    # API server
    api_port: int = Field(default=3001, description="FastAPI port")
    api_host: str = Field(default="0.0.0.0", description="FastAPI host")
    app_version: str = Field(default="1.0.0", description="Application version")

    # CORS (the canvas editor runs on a separate dev server)
    cors_allow_origins: str = Field(default="*", description="Comma-separated list of allowed origins")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority for environment-specific config.

        Priority (highest to lowest):
        1. init_settings - Values passed to Settings() constructor
        2. env_settings - Environment variables
        3. dotenv files - .env.local > .env.{APP_ENV} > .env (last-wins in list)
        """
        dotenv_source = DotEnvSettingsSource(
            settings_cls,
            env_file=_get_env_files(),
            env_file_encoding="utf-8",
        )
        return (init_settings, env_settings, dotenv_source)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | None) -> str:
        """Validate and normalize APP_ENV value."""
        if v is None:
            return "development"
        normalized = str(v).lower()
        if normalized not in ("development", "production", "test"):
            raise ValueError(f"app_env must be 'development', 'production', or 'test', got '{v}'")
        return normalized

    @field_validator("api_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate API provider selection."""
        value = v.lower()
        if value not in ("azure", "openai"):
            raise ValueError("api_provider must be 'azure' or 'openai'")
        return value

    @field_validator("azure_openai_endpoint")
    @classmethod
    def ensure_endpoint_format(cls, v: HttpUrl | None) -> HttpUrl | None:
        """Ensure endpoint URL ends with trailing slash for OpenAI client."""
        if v is None:
            return None
        url_str = str(v)
        if not url_str.endswith("/"):
            return HttpUrl(url_str + "/")
        return v

    @field_validator("openai_api_key", "azure_openai_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Basic validation of API key format."""
        if v is not None and len(v) < 10:
            raise ValueError("Invalid API key format")
        return v

    @model_validator(mode="after")
    def validate_provider_credentials(self) -> Settings:
        """Validate that required credentials are present for the selected provider."""
        if self.api_provider == "azure":
            if not self.azure_openai_api_key:
                raise ValueError(
                    "Configuration Error: azure_openai_api_key is required when api_provider='azure'.\n"
                    "Set AZURE_OPENAI_API_KEY in your .env file or environment."
                )
            if not self.azure_openai_endpoint:
                raise ValueError(
                    "Configuration Error: azure_openai_endpoint is required when api_provider='azure'.\n"
                    "Set AZURE_OPENAI_ENDPOINT in your .env file or environment."
                )
        elif not self.openai_api_key:
            raise ValueError(
                "Configuration Error: openai_api_key is required when api_provider='openai'.\n"
                "Set OPENAI_API_KEY in your .env file or environment."
            )
        return self

    @property
    def azure_endpoint_str(self) -> str:
        """Get endpoint as string for OpenAI client."""
        if self.azure_openai_endpoint is None:
            return ""
        return str(self.azure_openai_endpoint)

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


# ============================================================================
# Settings Management (Thread-safe)
# ============================================================================


class _SettingsManager:
    """Thread-safe settings singleton.

    Uses a class to avoid global statement warnings from linters.
    """

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def get(self) -> Settings:
        """Get the cached settings instance, loading it on first use.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        if self._instance is not None:
            return self._instance

        with self._lock:
            if self._instance is None:
                _reload_dotenv_into_environ()
                self._instance = Settings()
            return self._instance

    def reload(self) -> Settings:
        """Force reload settings from environment files."""
        with self._lock:
            _reload_dotenv_into_environ()
            self._instance = Settings()
            return self._instance

    def clear(self) -> None:
        """Clear cached settings instance."""
        with self._lock:
            self._instance = None


# Module-level singleton manager
_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """Get validated settings (loaded once, then cached).

    Raises:
        ValueError: If required configuration is missing or invalid.
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Force reload settings from environment files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    """Clear cached settings instance.

    Primarily useful for testing to ensure fresh settings on each test.
    """
    _settings_manager.clear()
