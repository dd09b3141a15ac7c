"""Process configuration for the attachment organizer.

Values come from `ORGANIZER_*` environment variables (or a `.env` file) and
control where per-vault state lives and how the process logs. The per-vault
organizing rules themselves are in `settings`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class OrganizerConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ORGANIZER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Settings file, relative to the vault root
    settings_filename: str = ".organizer.yaml"

    # Folder (relative to the vault root) holding the persisted undo history
    state_dir: str = ".organizer"
    undo_history_filename: str = "undo_history.json"

    # Burst of vault change events collapsed into one rescan
    refresh_debounce_seconds: float = 0.6

    log_level: str = "INFO"
    log_dir: Optional[str] = None


config = OrganizerConfig()


def get_settings_path(vault_root: Path) -> Path:
    """Location of the settings file for a vault."""
    return Path(vault_root) / config.settings_filename


def get_undo_history_path(vault_root: Path) -> Path:
    """Location of the persisted undo history for a vault."""
    return Path(vault_root) / config.state_dir / config.undo_history_filename
