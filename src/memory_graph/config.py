"""Configuration loading for the memory graph."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# === Constants ===

DEFAULT_MEMORY_FILE = "memory.jsonl"
MEMORY_FILE_ENV_VAR = "MEMORY_FILE_PATH"
CACHE_TTL_ENV_VAR = "MEMORY_CACHE_TTL_SECONDS"

# Freshness window for the in-memory graph cache
DEFAULT_CACHE_TTL_SECONDS: float = 5 * 60

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def resolve_memory_path(path: Path | str) -> Path:
    """Expand ``${ENV_VAR}`` references and ``~``, then make ``path`` absolute.

    Raises:
        ValueError: if the path is empty or a referenced variable is unset.
    """
    raw = str(path)
    if not raw.strip():
        raise ValueError("Memory file path must not be empty")

    def replacer(match: re.Match[str]) -> str:
        env_var = match.group(1)
        value = os.getenv(env_var)
        if value is None:
            raise ValueError(
                f"Environment variable '{env_var}' is not set. "
                f"Required for memory file path."
            )
        return value

    return Path(_ENV_REF.sub(replacer, raw)).expanduser().resolve()


class MemoryGraphConfig(BaseModel):
    """Resolved settings for a KnowledgeGraphManager."""

    model_config = ConfigDict(frozen=True)

    file_path: Path
    cache_ttl_seconds: float = Field(default=DEFAULT_CACHE_TTL_SECONDS, gt=0)

    @field_validator("file_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Any:
        if isinstance(v, (str, Path)):
            return resolve_memory_path(v)
        return v


def get_default_memory_path() -> Path:
    """Get the memory file path from the environment, or ./memory.jsonl."""
    if env_path := os.environ.get(MEMORY_FILE_ENV_VAR):
        return Path(env_path)
    return Path.cwd() / DEFAULT_MEMORY_FILE


def load_config(
    file_path: Path | str | None = None,
    cache_ttl_seconds: float | str | None = None,
) -> MemoryGraphConfig:
    """Resolve configuration.

    Explicit arguments win, then the environment, then defaults.

    Raises:
        pydantic.ValidationError: if the resolved values are invalid.
    """
    if file_path is None:
        file_path = get_default_memory_path()

    if cache_ttl_seconds is None:
        cache_ttl_seconds = os.environ.get(CACHE_TTL_ENV_VAR) or DEFAULT_CACHE_TTL_SECONDS

    return MemoryGraphConfig(file_path=file_path, cache_ttl_seconds=cache_ttl_seconds)
