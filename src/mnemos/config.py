"""Repository configuration (.mnemos/config.yaml)."""

from pathlib import Path
from typing import List, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_CHUNK_SIZE
from .errors import ConfigError
from .utils import atomic_write_text


class RepoConfig(BaseModel):
    """Per-repository settings. Every field has a default, so the file is optional."""

    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    lock_timeout: float = Field(default=300, gt=0)
    diff_tool: Literal["builtin", "external"] = "builtin"
    diff_command: List[str] = Field(default_factory=lambda: ["diff", "-u"], min_length=1)
    rsync_command: List[str] = Field(default_factory=lambda: ["rsync", "-av"], min_length=1)
    ssh_command: List[str] = Field(default_factory=lambda: ["ssh"], min_length=1)


def load_config(path: Path) -> RepoConfig:
    """Load configuration, falling back to defaults when the file is absent.

    Raises:
        ConfigError: If the file exists but is not valid YAML or fails validation
    """
    if not path.exists():
        return RepoConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    try:
        return RepoConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def save_config(config: RepoConfig, path: Path) -> None:
    """Save configuration atomically."""
    text = yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False)
    atomic_write_text(path, text)
