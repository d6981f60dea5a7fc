from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    EnvSettingsSource,
    JsonConfigSettingsSource,
)

DEFAULT_AGENTLOOP_DIR = Path(".agentloop")
DEFAULT_CONFIG_PATH = DEFAULT_AGENTLOOP_DIR / "config.json"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables, .env, and JSON.

    Environment variables use the ``AGENTLOOP_`` prefix, e.g.
    ``AGENTLOOP_API_KEY`` or ``AGENTLOOP_BASE_URL``.
    """

    api_key: Optional[SecretStr] = Field(
        default=None, description="Bearer credential for the model endpoint."
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="OpenAI-compatible endpoint (OpenRouter, OpenAI, Ollama).",
    )
    model_name: str = Field(
        default="mistralai/devstral-2512:free",
        description="Model identifier sent to the endpoint.",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Sampling temperature; lower values give steadier tool calls.",
    )
    max_tokens: Optional[int] = Field(
        default=1000, ge=1, description="Maximum tokens generated per model call."
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for one model call."
    )
    max_steps: int = Field(
        default=25, ge=1, description="Default step limit for one invocation."
    )
    transport_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts per model call for transient provider failures.",
    )
    history_max_messages: Optional[int] = Field(
        default=None,
        ge=1,
        description="Trim the model-visible history to this many messages.",
    )
    store_backend: Literal["memory", "json"] = Field(
        default="memory", description="Conversation store implementation."
    )
    agentloop_dir: Path = Field(
        default=DEFAULT_AGENTLOOP_DIR, description="Root directory for artifacts."
    )
    threads_path: Optional[Path] = Field(
        default=None, description="Directory holding persisted threads."
    )
    log_level: str = Field(default="INFO", description="Root logging level.")

    model_config = SettingsConfigDict(
        env_prefix="AGENTLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @staticmethod
    def _resolve_relative_path(path: Path, root: Path) -> Path:
        """
        Resolves a relative path by anchoring it under the artifact directory.

        Args:
            path: The input path to resolve.
            root: The artifact root directory.

        Returns:
            A resolved path under the root directory when relative.
        """
        if path.is_absolute():
            return path

        root_parts = root.parts
        if path.parts[: len(root_parts)] == root_parts:
            return path
        return root / path

    @model_validator(mode="after")
    def _apply_defaults(self) -> "Config":
        """
        Derives default storage paths from the artifact directory.

        Returns:
            The validated configuration instance.
        """
        if self.threads_path is None:
            self.threads_path = self.agentloop_dir / "threads"
        else:
            self.threads_path = self._resolve_relative_path(
                self.threads_path, self.agentloop_dir
            )
        self.base_url = self.base_url.rstrip("/")
        return self

    @classmethod
    def load(
        cls, path: Optional[Path] = None, env_file: Optional[Path] = None
    ) -> "Config":
        """
        Loads configuration, merging a JSON file when present.

        Precedence is JSON file < .env < environment.

        Args:
            path: Optional override path for the JSON config file.
            env_file: Optional override path for the .env file.

        Returns:
            A validated configuration object.
        """
        config_path = path or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return cls() if env_file is None else cls(_env_file=env_file)

        json_source = JsonConfigSettingsSource(cls, json_file=config_path)
        dotenv_source = (
            DotEnvSettingsSource(cls)
            if env_file is None
            else DotEnvSettingsSource(cls, env_file=env_file)
        )
        env_source = EnvSettingsSource(cls)
        merged: dict[str, object] = {}
        merged.update(json_source())
        merged.update(dotenv_source())
        merged.update(env_source())
        return cls.model_validate(merged)

    def get_api_key(self) -> Optional[str]:
        """Returns the API key for runtime usage, or None if unset."""

        if self.api_key is None:
            return None
        return self.api_key.get_secret_value()

    def get_base_url(self) -> str:
        return self.base_url

    def get_model_name(self) -> str:
        return self.model_name

    def get_threads_path(self) -> Path:
        """
        Returns the directory used by the JSON conversation store.

        Returns:
            The threads directory path.
        """
        if self.threads_path is None:
            raise ValueError("Threads path is not configured.")
        return self.threads_path
