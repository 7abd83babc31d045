"""Configuration management for Merkle Guard."""

import json
import os
from pathlib import Path

from pydantic import BaseModel, field_validator

from . import CONFIG_FILE
from .digests import DIGEST_ALGORITHMS

DIGEST_ALGORITHM_NAMES: tuple[str, ...] = tuple(DIGEST_ALGORITHMS)


class TreeConfig(BaseModel):
    """Configuration for building Merkle trees from item files."""

    version: int = 1
    digest_algorithm: str = "sha256"
    encoding: str = "utf-8"
    skip_blank_lines: bool = True
    strip_whitespace: bool = True

    @field_validator("digest_algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        if value not in DIGEST_ALGORITHMS:
            raise ValueError(
                f"Unknown digest algorithm '{value}'; choose one of: {', '.join(DIGEST_ALGORITHM_NAMES)}"
            )
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            "".encode(value)
        except LookupError as e:
            raise ValueError(f"Unknown encoding '{value}'") from e
        return value


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return project_root / CONFIG_FILE


def load_config(project_root: Path) -> TreeConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = TreeConfig.model_validate(data)
    else:
        config = TreeConfig()

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config


def save_config(config: TreeConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: TreeConfig) -> TreeConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    # MKG_DIGEST_ALGORITHM
    if algorithm := os.environ.get("MKG_DIGEST_ALGORITHM"):
        if algorithm in DIGEST_ALGORITHM_NAMES:
            data["digest_algorithm"] = algorithm

    # MKG_ENCODING
    if encoding := os.environ.get("MKG_ENCODING"):
        data["encoding"] = encoding

    return TreeConfig.model_validate(data)
