"""Analysis settings loaded from environment variables or a .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_files() -> list[Path]:
    """Find the nearest .env file, searching upward from CWD.

    Lets ``sortlens`` pick up project settings whether it is run from the
    study folder or from a results subfolder.
    """
    cwd = Path.cwd().resolve()
    for parent in [cwd, *cwd.parents]:
        env_path = parent / ".env"
        if env_path.is_file():
            return [env_path]
    return []


class SortlensSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SORTLENS_",
        env_file=_find_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Journeys
    hesitation_threshold: int = Field(default=2, ge=0)  # moves above this = hesitation
    pattern_min_frequency: int = Field(default=2, ge=1)
    top_patterns: int = Field(default=10, ge=1)
    top_problematic_cards: int = Field(default=10, ge=1)
    consensus_move_fraction: float = Field(default=0.3, ge=0.0, le=1.0)

    # Trends
    trend_slope_threshold: float = Field(default=0.5, ge=0.0)

    # CLI display
    top_pairs: int = Field(default=10, ge=1)


def load_settings(**overrides: object) -> SortlensSettings:
    """Load settings with optional CLI overrides.

    ``None`` overrides are dropped so unset CLI options fall back to the
    environment.
    """
    cleaned = {k: v for k, v in overrides.items() if v is not None}
    return SortlensSettings(**cleaned)  # type: ignore[arg-type]
