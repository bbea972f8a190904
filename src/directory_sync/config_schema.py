"""Configuration schema for directory_sync.

Pydantic models for the YAML config file, with one section per concern:

- ``reconciliation``: how external records are turned into local entities.
- ``logging``: log level, destination and format.

Usage:
    from directory_sync.config_loader import load_hierarchical_config
    from directory_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ReconciliationConfig(BaseModel):
    """Reconciliation policy settings.

    Every field is optional in the file; ``None`` means "not configured
    here" so environment variables and built-in defaults can fill the gap.
    """

    default_actor: str | None = Field(
        default=None,
        description="Principal recorded in audit fields when the caller gives none",
    )
    archive_prefix: str | None = Field(
        default=None,
        description="Marker prepended to archived team names and descriptions",
    )
    general_channel_names: list[str] | None = Field(
        default=None,
        description="Display names that identify a team's general channel",
    )
    default_membership_type: str | None = Field(
        default=None,
        description="Channel membership type used when the record has none",
    )

    model_config = {"frozen": True}

    @field_validator("default_actor", "archive_prefix")
    @classmethod
    def _not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            the mode default when unset.
        file: Optional log file path.
        format: ``"text"`` or single-line ``"json"``.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log record format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """All config sections.  ``UnifiedConfig()`` is a valid zero-config."""

    reconciliation: ReconciliationConfig = Field(
        default_factory=ReconciliationConfig
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Build a ``UnifiedConfig`` from the dict returned by
    ``load_hierarchical_config()``.  Missing sections get defaults.

    Raises:
        pydantic.ValidationError: If a section holds invalid values.
    """
    if not raw_data:
        return UnifiedConfig()
    return UnifiedConfig(**raw_data)
