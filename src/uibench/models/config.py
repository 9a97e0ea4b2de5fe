"""Project configuration model for uibench.

Captures uibench.yaml fields with sensible defaults, and resolves
provider API keys from explicit values or the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from uibench.errors import MissingCredentialError

CONFIG_FILENAME = "uibench.yaml"

# Environment variables consulted when no key is passed explicitly.
DEFAULT_API_KEY_ENV: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "zai": "ZAI_API_KEY",
    "minimax": "MINIMAX_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


class ProjectConfig(BaseModel):
    """Project-level configuration loaded from uibench.yaml."""

    model_config = {"extra": "forbid"}

    data_dir: str = "data"
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    request_timeout_seconds: float = Field(default=600.0, gt=0)
    max_duration_seconds: float | None = Field(default=None, gt=0)
    use_sdk: list[str] = Field(default_factory=list)
    api_key_env: dict[str, str] = Field(default_factory=dict)

    def data_path(self, project_root: Path) -> Path:
        """Resolve data_dir against the project root."""
        path = Path(self.data_dir)
        return path if path.is_absolute() else project_root / path

    def env_var_for(self, provider: str) -> str | None:
        return self.api_key_env.get(provider) or DEFAULT_API_KEY_ENV.get(provider)


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start (default: cwd) looking for uibench.yaml.

    Returns:
        The directory containing uibench.yaml, or cwd if none is found.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current
        current = current.parent
    return Path.cwd()


def load_project_config(project_root: Path | None = None) -> ProjectConfig:
    """Load ProjectConfig from uibench.yaml. Returns defaults if not found."""
    if project_root is None:
        project_root = find_project_root()
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return ProjectConfig()
    import yaml

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return ProjectConfig()
    return ProjectConfig.model_validate(raw)


def resolve_api_key(
    provider: str,
    api_key: str | None = None,
    api_keys: Mapping[str, str] | None = None,
    env: Mapping[str, str] | None = None,
    config: ProjectConfig | None = None,
) -> str:
    """Resolve the API key for a provider.

    Lookup order: explicit api_key, the per-provider api_keys mapping,
    then the provider's environment variable.

    Raises:
        MissingCredentialError: If no key is found.
    """
    if api_key:
        return api_key
    if api_keys and api_keys.get(provider):
        return api_keys[provider]

    env = os.environ if env is None else env
    env_var = (config or ProjectConfig()).env_var_for(provider)
    if env_var and env.get(env_var):
        return env[env_var]
    raise MissingCredentialError(provider, env_var)
