"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from agentloop.config import DEFAULT_BASE_URL, Config
from agentloop.config_provider import ConfigProvider


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("API_KEY", "BASE_URL", "MODEL_NAME", "MAX_STEPS"):
        monkeypatch.delenv(f"AGENTLOOP_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


def test_config_load_defaults(tmp_path: Path) -> None:
    """Uses default values when the config file is missing."""
    config = Config.load(path=tmp_path / "missing.json")

    assert config.get_base_url() == DEFAULT_BASE_URL
    assert config.get_api_key() is None
    assert config.max_steps == 25
    assert config.transport_max_attempts == 1
    assert config.store_backend == "memory"
    assert config.get_threads_path() == Path(".agentloop") / "threads"


def test_config_load_from_file(tmp_path: Path) -> None:
    """Loads configuration values from JSON when present."""
    config_path = tmp_path / "config.json"
    config_path.write_text(
        """
        {
          "api_key": "test-key",
          "base_url": "http://localhost:11434/v1/",
          "model_name": "llama3.1",
          "max_steps": 5,
          "store_backend": "json",
          "threads_path": "threads"
        }
        """,
        encoding="utf-8",
    )

    config = Config.load(path=config_path)

    assert config.get_api_key() == "test-key"
    assert config.get_base_url() == "http://localhost:11434/v1"
    assert config.get_model_name() == "llama3.1"
    assert config.max_steps == 5
    assert config.store_backend == "json"
    assert config.get_threads_path() == Path(".agentloop") / "threads"


def test_environment_overrides_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text('{"model_name": "from-file"}', encoding="utf-8")
    monkeypatch.setenv("AGENTLOOP_MODEL_NAME", "from-env")

    assert Config.load(path=config_path).get_model_name() == "from-env"


def test_config_provider_loads_custom_path(tmp_path: Path) -> None:
    """Loads configuration via the provider path override."""
    config_path = tmp_path / "config.json"
    config_path.write_text('{"model_name": "gpt-4o-mini"}', encoding="utf-8")

    config = ConfigProvider(path=config_path).load()

    assert config.get_model_name() == "gpt-4o-mini"


def test_api_key_is_masked() -> None:
    config = Config(api_key="sk-secret-value")

    assert "sk-secret-value" not in repr(config)
    assert config.get_api_key() == "sk-secret-value"


def test_config_rejects_invalid_values() -> None:
    with pytest.raises(ValidationError):
        Config(max_steps=0)
    with pytest.raises(ValidationError):
        Config(store_backend="redis")

def test_config_load_reads_custom_env_file(tmp_path: Path) -> None:
    """Reads AGENTLOOP_* values from an explicit env file."""
    env_path = tmp_path / "custom.env"
    env_path.write_text("AGENTLOOP_MODEL_NAME=from-env-file\n", encoding="utf-8")

    config = Config.load(path=tmp_path / "missing.json", env_file=env_path)

    assert config.get_model_name() == "from-env-file"


def test_env_file_overrides_json_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        '{"model_name": "from-file", "max_steps": 4}', encoding="utf-8"
    )
    env_path = tmp_path / "custom.env"
    env_path.write_text("AGENTLOOP_MODEL_NAME=from-env-file\n", encoding="utf-8")

    config = ConfigProvider(path=config_path, env_file=env_path).load()

    assert config.get_model_name() == "from-env-file"
    assert config.max_steps == 4


def test_config_provider_rejects_missing_env_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ConfigProvider(env_file=tmp_path / "absent.env")
