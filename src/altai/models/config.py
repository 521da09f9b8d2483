"""Configuration models for altai."""

from pydantic import BaseModel, Field, HttpUrl
from pathlib import Path
import yaml
import os
import stat


class ModelConfig(BaseModel):
    """Chat-completion model settings."""

    name: str = Field(
        default="gpt-4",
        description="Model identifier (e.g., 'gpt-4', 'gpt-4-turbo-preview', 'gpt-3.5-turbo')"
    )

    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )

    max_tokens: int = Field(
        default=2000,
        ge=1,
        description="Maximum tokens in the completion"
    )

    model_config = {"frozen": True}


class CapabilitiesConfig(BaseModel):
    """Switches for the single-shot editor actions."""

    completion: bool = True
    enhancement: bool = True
    summarization: bool = True
    translation: bool = True
    tone_adjustment: bool = True

    model_config = {"frozen": True}


class UIConfig(BaseModel):
    """Editor UI switches, passed through to the host untouched."""

    floating_menu: bool = True
    keyboard_shortcuts: bool = True
    show_suggestions: bool = True

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for altai."""

    api_key: str = Field(
        default="",
        description="API key for the chat-completion endpoint (required for any call)"
    )

    endpoint: HttpUrl = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible API"
    )

    model: ModelConfig = Field(default_factory=ModelConfig, description="Model settings")
    capabilities: CapabilitiesConfig = Field(
        default_factory=CapabilitiesConfig,
        description="Single-shot action switches"
    )
    ui: UIConfig = Field(default_factory=UIConfig, description="UI switches")

    website_context: str = Field(
        default="",
        description="Free text injected verbatim into every chat system prompt"
    )

    system_prompt_override: str = Field(
        default="",
        description="Replaces the default system preamble entirely when non-empty"
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Validates file permissions before loading, since the file holds
        the API key.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            PermissionError: If file is group/world accessible
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"api_key: YOUR_API_KEY_HERE\n"
                f"model:\n"
                f"  name: gpt-4\n"
                f"  temperature: 0.7\n"
                f"  max_tokens: 2000\n"
                f"website_context: ''\n"
            )

        mode = os.stat(path).st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            raise PermissionError(
                f"Config file has overly permissive permissions: {oct(mode)}\n"
                f"Run: chmod 600 {path}"
            )

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    model_config = {"frozen": True}
