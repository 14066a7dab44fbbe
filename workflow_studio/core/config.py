"""Studio configuration loaded from YAML.

Search order (first existing file wins):
- an explicit path passed by the caller
- ``.workflow-studio/config.yaml`` in the current project
- ``~/.workflow-studio/config.yaml`` for the user

Missing files fall back to built-in defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from workflow_studio.core.errors import ConfigError
from workflow_studio.core.models import Position

logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

CONFIG_SEARCH_PATHS = [
    Path(".workflow-studio/config.yaml"),
    Path.home() / ".workflow-studio/config.yaml",
]


class CanvasSettings(BaseModel):
    """Layout constants used for anchors and auto-placement."""

    node_width: float = 150.0  # x-offset of the outgoing anchor
    anchor_y_offset: float = 40.0
    default_origin: Position = Field(default_factory=lambda: Position(x=100, y=100))
    default_spacing: float = 120.0


class ConfigFieldSettings(BaseModel):
    """How node config fields are classified for editing."""

    enum_options: dict[str, list[str]] = Field(
        default_factory=lambda: {"method": list(HTTP_METHODS)}
    )
    hidden_fields: list[str] = Field(default_factory=lambda: ["description"])


class HistorySettings(BaseModel):
    default_limit: int = Field(default=50, gt=0)
    max_records: int | None = Field(default=None, gt=0)


class ExecutionSettings(BaseModel):
    default_trigger: str = "manual"


class StudioConfig(BaseModel):
    """Top-level configuration for one studio instance."""

    canvas: CanvasSettings = Field(default_factory=CanvasSettings)
    config_fields: ConfigFieldSettings = Field(default_factory=ConfigFieldSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> StudioConfig:
        """Parse a single YAML file. Raises ConfigError on any problem."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e


def load_config(path: Path | None = None) -> StudioConfig:
    """Load the first config found on the search path, or defaults."""
    if path is not None:
        logger.debug(f"Loading studio config from {path}")
        return StudioConfig.from_yaml(path)

    for candidate in CONFIG_SEARCH_PATHS:
        if candidate.exists():
            logger.debug(f"Loading studio config from {candidate}")
            return StudioConfig.from_yaml(candidate)

    return StudioConfig()
