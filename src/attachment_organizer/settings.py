"""Organizer settings.

The settings are persisted per vault as a YAML document. Loading never
rejects a file: each field that fails validation falls back to its default,
nested sections merge key by key, and unknown keys are ignored. A legacy
single-folder `zone_c` value is migrated into `extra_scan_folders` and the
migrated document is written back once.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .classifier import DEFAULT_ATTACHMENT_RULES_TEXT, split_rule_lines
from .config import get_settings_path
from .exceptions import SettingsError
from .paths import normalize_path

logger = logging.getLogger(__name__)

BacklinkScope = Literal["zoneA-only", "whole-vault"]
GlobalNameCheck = Literal["off", "on-ignore-explicit", "on-even-explicit"]
MultiBacklinkPolicy = Literal["unchanged", "lca", "pick-first"]
PlacementMode = Literal[
    "vault-folder",
    "specified-folder",
    "same-folder-as-note",
    "subfolder-under-note",
]

LEGACY_EXTRA_FOLDER_KEYS = ("zone_c", "zoneC")


class LinkSources(BaseModel):
    """Which kinds of note links count as references."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    links: bool = True
    embeds: bool = True
    frontmatter: bool = True


class PlacementPolicy(BaseModel):
    """Where a relocated attachment goes relative to its base folder."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    mode: PlacementMode = "subfolder-under-note"
    specified_folder: str = ""
    subfolder_name: str = "attachments"


class OrganizerSettings(BaseModel):
    """Per-vault organizing rules."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    zone_a: str = Field(default="", description="Workspace root; empty means the vault root")
    zone_b: str = Field(default="Draft", description="Staging folder for orphan attachments")
    extra_scan_folders: List[str] = Field(default_factory=list)
    extra_scan_enabled: bool = False
    recursive: bool = True

    backlink_scope: BacklinkScope = "zoneA-only"
    link_sources: LinkSources = Field(default_factory=LinkSources)

    placement: PlacementPolicy = Field(default_factory=PlacementPolicy)
    multi_backlink_policy: MultiBacklinkPolicy = "unchanged"
    global_name_check: GlobalNameCheck = "on-ignore-explicit"

    # One regular expression per line, unioned with the built-in rules
    attachment_rules_text: str = DEFAULT_ATTACHMENT_RULES_TEXT
    plan_out_attachments: bool = False

    show_stats: bool = False

    def user_rule_lines(self) -> List[str]:
        return split_rule_lines(self.attachment_rules_text)

    def active_extra_folders(self) -> List[str]:
        """Extra-scan roots in effect (none when extra scan is disabled)."""
        if not self.extra_scan_enabled:
            return []
        return [normalize_path(f) for f in self.extra_scan_folders if f and f.strip()]


def _merge_section(model_cls: Type[BaseModel], defaults: Dict[str, Any], raw: Any, label: str) -> Dict[str, Any]:
    """Merge a raw mapping over defaults, one validated field at a time."""
    merged = dict(defaults)
    if raw is None:
        return merged
    if not isinstance(raw, Mapping):
        logger.warning(f"[Settings] Ignoring '{label}': expected a mapping, got {type(raw).__name__}")
        return merged

    for key, value in raw.items():
        if key not in model_cls.model_fields:
            continue

        field_default = defaults.get(key)
        if isinstance(field_default, dict):
            nested_cls = model_cls.model_fields[key].annotation
            value = _merge_section(nested_cls, field_default, value, f"{label}.{key}" if label else key)

        try:
            model_cls.model_validate({**merged, key: value})
        except ValidationError as e:
            name = f"{label}.{key}" if label else key
            logger.warning(f"[Settings] Invalid value for '{name}', using default: {e.errors()[0]['msg']}")
            continue
        merged[key] = value

    return merged


def migrate_legacy(data: Dict[str, Any]) -> bool:
    """Absorb a legacy single extra-scan folder into the list field.

    Mutates `data` in place.

    Returns:
        True when a legacy key was found (and removed)
    """
    found = False
    for key in LEGACY_EXTRA_FOLDER_KEYS:
        if key not in data:
            continue
        found = True
        legacy = data.pop(key)
        if not isinstance(legacy, str) or not legacy.strip():
            continue

        folder = legacy.strip()
        folders = data.get("extra_scan_folders")
        if not isinstance(folders, list):
            folders = []
        if folder not in folders:
            folders = folders + [folder]
        data["extra_scan_folders"] = folders
        data["extra_scan_enabled"] = True
        logger.info(f"[Settings] Migrated legacy extra-scan folder '{folder}'")

    return found


def settings_from_data(data: Any) -> Tuple[OrganizerSettings, bool]:
    """Build settings from a loaded document, merging over defaults.

    Returns:
        (settings, migrated) where `migrated` means the document should be
        written back once
    """
    defaults = OrganizerSettings().model_dump()

    if data is None:
        return OrganizerSettings(), False
    if not isinstance(data, Mapping):
        logger.warning(f"[Settings] Settings document is a {type(data).__name__}, using defaults")
        return OrganizerSettings(), False

    raw = dict(data)
    migrated = migrate_legacy(raw)

    merged = _merge_section(OrganizerSettings, defaults, raw, "")
    settings = OrganizerSettings.model_validate(merged)

    # Built-in rules are always re-added on compile, but keep them visible too
    if not settings.attachment_rules_text.strip():
        settings.attachment_rules_text = DEFAULT_ATTACHMENT_RULES_TEXT

    return settings, migrated


def load_settings(vault_root: Path, path: Optional[Path] = None) -> OrganizerSettings:
    """Load the settings of a vault, falling back to defaults.

    Args:
        vault_root: Vault root directory
        path: Explicit settings file (defaults to the configured filename
            under the vault root)

    Returns:
        Effective settings

    Raises:
        SettingsError: If the file exists but cannot be read, or a migration
            cannot be written back
    """
    settings_path = Path(path) if path else get_settings_path(vault_root)
    if not settings_path.exists():
        logger.debug(f"[Settings] No settings file at {settings_path}, using defaults")
        return OrganizerSettings()

    try:
        text = settings_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Cannot read settings file {settings_path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.warning(f"[Settings] Malformed settings file {settings_path}, using defaults: {e}")
        return OrganizerSettings()

    settings, migrated = settings_from_data(data)
    if migrated:
        save_settings(settings, vault_root, settings_path)

    return settings


def save_settings(settings: OrganizerSettings, vault_root: Path, path: Optional[Path] = None) -> Path:
    """Write settings as YAML.

    Returns:
        The path written

    Raises:
        SettingsError: If the file cannot be written
    """
    settings_path = Path(path) if path else get_settings_path(vault_root)
    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(
            yaml.safe_dump(settings.model_dump(), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
    except OSError as e:
        raise SettingsError(f"Cannot write settings file {settings_path}: {e}") from e

    logger.info(f"[Settings] Saved settings to {settings_path}")
    return settings_path
