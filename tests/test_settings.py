"""Tests for settings loading, merging and migration."""

import logging

import pytest
import yaml

from attachment_organizer.classifier import DEFAULT_ATTACHMENT_RULES_TEXT
from attachment_organizer.config import OrganizerConfig, get_settings_path
from attachment_organizer.exceptions import SettingsError
from attachment_organizer.settings import (OrganizerSettings, load_settings,
                                           migrate_legacy, save_settings,
                                           settings_from_data)


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        s = OrganizerSettings()
        assert s.zone_a == ""
        assert s.zone_b == "Draft"
        assert s.extra_scan_folders == []
        assert s.extra_scan_enabled is False
        assert s.recursive is True
        assert s.backlink_scope == "zoneA-only"
        assert s.placement.mode == "subfolder-under-note"
        assert s.placement.subfolder_name == "attachments"
        assert s.multi_backlink_policy == "unchanged"
        assert s.global_name_check == "on-ignore-explicit"
        assert s.user_rule_lines() == [r"\.excalidraw\.md$", r"\.canvas\.md$"]
        assert s.plan_out_attachments is False

    def test_active_extra_folders_respects_flag(self):
        s = OrganizerSettings(extra_scan_folders=["/Archive/", " "])
        assert s.active_extra_folders() == []
        s.extra_scan_enabled = True
        assert s.active_extra_folders() == ["Archive"]


class TestSettingsFromData:
    """Tests for merging a loaded document over defaults."""

    def test_partial_document(self):
        settings, migrated = settings_from_data({"zone_a": "Work", "link_sources": {"embeds": False}})
        assert settings.zone_a == "Work"
        assert settings.link_sources.embeds is False
        assert settings.link_sources.links is True
        assert migrated is False

    def test_invalid_field_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="attachment_organizer"):
            settings, _ = settings_from_data(
                {"multi_backlink_policy": "bogus", "zone_b": "Inbox", "placement": {"mode": "nowhere", "subfolder_name": "img"}}
            )
        assert settings.multi_backlink_policy == "unchanged"
        assert settings.zone_b == "Inbox"
        assert settings.placement.mode == "subfolder-under-note"
        assert settings.placement.subfolder_name == "img"
        assert "multi_backlink_policy" in caplog.text

    def test_unknown_keys_ignored(self):
        settings, _ = settings_from_data({"whatever": 1, "recursive": False})
        assert settings.recursive is False

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def test_non_mapping_yields_defaults(self, data):
        settings, migrated = settings_from_data(data)
        assert settings == OrganizerSettings()
        assert migrated is False

    def test_blank_rules_reset(self):
        settings, _ = settings_from_data({"attachment_rules_text": "   "})
        assert settings.attachment_rules_text == DEFAULT_ATTACHMENT_RULES_TEXT


class TestMigrateLegacy:
    """Tests for the legacy single extra-scan folder."""

    def test_absorbed_into_list(self):
        data = {"zone_c": "Archive", "extra_scan_folders": ["Old"]}
        assert migrate_legacy(data) is True
        assert data == {"extra_scan_folders": ["Old", "Archive"], "extra_scan_enabled": True}

    def test_camel_case_key(self):
        data = {"zoneC": "Archive"}
        migrate_legacy(data)
        assert data["extra_scan_folders"] == ["Archive"]

    def test_blank_legacy_value_dropped(self):
        data = {"zone_c": "  "}
        assert migrate_legacy(data) is True
        assert data == {}

    def test_no_legacy_key(self):
        assert migrate_legacy({"zone_a": "x"}) is False


class TestLoadSave:
    """Tests for the settings file."""

    def test_missing_file_defaults(self, tmp_path):
        assert load_settings(tmp_path) == OrganizerSettings()

    def test_round_trip(self, tmp_path):
        settings = OrganizerSettings(zone_a="Work", multi_backlink_policy="lca")
        path = save_settings(settings, tmp_path)

        assert path == get_settings_path(tmp_path)
        assert load_settings(tmp_path) == settings

    def test_malformed_yaml_defaults(self, tmp_path):
        get_settings_path(tmp_path).write_text("zone_a: [unclosed\n")
        assert load_settings(tmp_path) == OrganizerSettings()

    def test_legacy_migration_persisted_once(self, tmp_path):
        path = get_settings_path(tmp_path)
        path.write_text(yaml.safe_dump({"zone_a": "Work", "zone_c": "Archive"}))

        settings = load_settings(tmp_path)

        assert settings.extra_scan_folders == ["Archive"]
        assert settings.extra_scan_enabled is True
        written = yaml.safe_load(path.read_text())
        assert "zone_c" not in written
        assert written["extra_scan_folders"] == ["Archive"]

    def test_unreadable_file(self, tmp_path):
        get_settings_path(tmp_path).mkdir()
        with pytest.raises(SettingsError):
            load_settings(tmp_path)


class TestOrganizerConfig:
    """Tests for environment configuration."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ORGANIZER_REFRESH_DEBOUNCE_SECONDS", "1.5")
        monkeypatch.setenv("ORGANIZER_SETTINGS_FILENAME", "organizer.yml")
        cfg = OrganizerConfig()
        assert cfg.refresh_debounce_seconds == 1.5
        assert cfg.settings_filename == "organizer.yml"
