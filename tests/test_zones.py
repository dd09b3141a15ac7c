"""Tests for zone classification."""

import pytest

from attachment_organizer.models import Zone
from attachment_organizer.zones import classify_zone


class TestClassifyZone:
    """Tests for classify_zone priority and containment."""

    def test_staging_nested_in_workspace(self):
        """B nested inside A wins for its own subtree."""
        assert classify_zone("Work/Draft/x.png", "Work", "Work/Draft") == Zone.B
        assert classify_zone("Work/notes/x.png", "Work", "Work/Draft") == Zone.A

    def test_outside_everything(self):
        assert classify_zone("Other/x.png", "Work", "Draft") == Zone.OUT

    def test_empty_workspace_means_vault_root(self):
        """With no workspace root, everything outside B and C is A."""
        assert classify_zone("anything/x.png", "", "Draft") == Zone.A
        assert classify_zone("Draft/x.png", "", "Draft") == Zone.B

    def test_extra_folder_beats_workspace(self):
        assert classify_zone("Work/Archive/x.png", "Work", "Draft", ["Work/Archive"]) == Zone.C

    def test_staging_beats_extra_folder(self):
        assert classify_zone("Draft/x.png", "", "Draft", ["Draft"]) == Zone.B

    def test_prefix_without_separator_is_not_contained(self):
        assert classify_zone("Drafts/x.png", "Work", "Draft") == Zone.OUT

    def test_root_equal_to_zone_folder(self):
        assert classify_zone("Draft", "", "Draft") == Zone.B

    def test_empty_staging_root_disabled(self):
        assert classify_zone("x.png", "Work", "") == Zone.OUT

    @pytest.mark.parametrize(
        "path",
        ["", "x.png", "Work/a/b.png", "Draft/z.md", "Extra/e.pdf", "elsewhere/q"],
    )
    def test_total(self, path):
        """Every path gets exactly one zone."""
        assert classify_zone(path, "Work", "Draft", ["Extra"]) in set(Zone)
