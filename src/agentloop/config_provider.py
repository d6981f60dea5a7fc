"""Helpers for constructing configuration instances."""

from pathlib import Path
from typing import Optional

from agentloop.config import Config


class ConfigProvider:
    """
    Loads configuration on demand, never at import time.

    Both paths may be overridden from the command line; unset paths fall back
    to ``.agentloop/config.json`` and ``.env`` in the working directory.

    Args:
        path: Optional override path for the JSON config file.
        env_file: Optional override path for the .env file.
    """

    def __init__(
        self, path: Optional[Path] = None, env_file: Optional[Path] = None
    ) -> None:
        if env_file is not None and not env_file.is_file():
            raise FileNotFoundError(f"Env file not found: {env_file}")
        self._path = path
        self._env_file = env_file

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def env_file(self) -> Optional[Path]:
        return self._env_file

    def load(self) -> Config:
        """
        Loads a configuration instance using the configured paths.

        Returns:
            A validated configuration object.
        """
        return Config.load(self._path, env_file=self._env_file)
