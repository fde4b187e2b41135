"""Runtime settings for careertree.

Configuration is explicit, validated, and environment-driven.  Every field
can be overridden by a ``CAREERTREE_``-prefixed environment variable or a
``.env`` file in the working directory.

Fields
──────
database_url                  : SQLAlchemy URL of the node store
database_echo                 : Log every SQL statement
max_traversal_depth           : Hard cap on recursive walks (ancestors, subtree, depth stats)
default_subtree_depth         : Depth used when a subtree call gives none
depth_warning_threshold       : Max depth above which validation suggests flattening
major_cycle_size              : Cycles with more members than this are "major"
bulk_change_warning_threshold : Batch size above which validate_hierarchy_change warns
log_level / log_format        : structlog configuration

Examples:
    >>> import os
    >>> os.environ["CAREERTREE_MAX_TRAVERSAL_DEPTH"] = "50"
    >>> CareerTreeSettings().max_traversal_depth
    50

Tags:
    settings, configuration, pydantic, environment, careertree
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from careertree.core.errors import ConfigError


class CareerTreeSettings(BaseSettings):
    """Settings shared by the store, the cycle guard and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="CAREERTREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///careertree.db"
    database_echo: bool = False

    # ── Traversal limits ─────────────────────────────────────────
    max_traversal_depth: int = Field(default=100, ge=1)
    default_subtree_depth: int = Field(default=10, ge=0)

    # ── Diagnostics thresholds ───────────────────────────────────
    depth_warning_threshold: int = Field(default=10, ge=0)
    major_cycle_size: int = Field(default=5, ge=1)
    bulk_change_warning_threshold: int = Field(default=1, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


@lru_cache(maxsize=1)
def get_settings() -> CareerTreeSettings:
    """Cached settings, loaded once per process.

    Raises:
        ConfigError: an environment variable or ``.env`` entry is invalid.
    """
    try:
        return CareerTreeSettings()
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ConfigError(f"Invalid configuration: {', '.join(fields)}", cause=exc) from exc


__all__ = ["CareerTreeSettings", "get_settings"]
