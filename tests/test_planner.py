"""Tests for action planning."""

import pytest

from attachment_organizer.models import (Backlink, EntryTag, FileEntry,
                                         FileKind, Keep, MoveTo,
                                         MoveToStaging, Zone)
from attachment_organizer.planner import ActionPlanner


def _entry(path, zone=Zone.A, kind=FileKind.ATTACHMENT_FILE, notes=()):
    entry = FileEntry(path=path, display_name=path.rsplit("/", 1)[-1], zone=zone, kind=kind)
    for note in notes:
        entry.add_backlink(Backlink(from_note=note, raw="x", cleaned="x"))
    return entry


class TestTargetFolder:
    """Tests for placement policy resolution."""

    @pytest.mark.parametrize(
        "mode,expected",
        [
            ("vault-folder", ""),
            ("specified-folder", "Assets"),
            ("same-folder-as-note", "notes/day"),
            ("subfolder-under-note", "notes/day/attachments"),
        ],
    )
    def test_modes(self, mode, expected):
        planner = ActionPlanner(placement_mode=mode, specified_folder="/Assets/")
        assert planner.target_folder("notes/day") == expected

    def test_empty_subfolder_falls_back_to_base(self):
        planner = ActionPlanner(placement_mode="subfolder-under-note", subfolder_name="")
        assert planner.target_folder("notes") == "notes"

    def test_unknown_mode(self):
        assert ActionPlanner(placement_mode="nowhere").target_folder("notes") is None


class TestPlanEntry:
    """Tests for per-entry planning."""

    def test_orphan_goes_to_staging(self):
        entry = _entry("img.png")
        ActionPlanner().plan_entry(entry)
        assert entry.action == MoveToStaging(reason="orphan")
        assert EntryTag.ORPHAN in entry.tags

    def test_single_backlink_policy(self):
        entry = _entry("img.png", notes=["notes/n.md"])
        ActionPlanner().plan_entry(entry)
        assert entry.action == MoveTo(target="notes/attachments/img.png", reason="single-backlink-policy")

    def test_single_backlink_explicit(self):
        entry = _entry("img.png")
        entry.add_backlink(
            Backlink(from_note="n.md", raw="pics/img.png", cleaned="pics/img.png", explicit_path="pics/img.png")
        )
        ActionPlanner().plan_entry(entry)
        assert entry.action == MoveTo(target="pics/img.png", reason="single-backlink-explicit", explicit=True)

    def test_multi_unchanged_keeps(self):
        entry = _entry("img.png", notes=["a/n.md", "b/n.md"])
        ActionPlanner(multi_backlink_policy="unchanged").plan_entry(entry)
        assert entry.action == Keep()

    def test_multi_pick_first(self):
        entry = _entry("img.png", notes=["b/n.md", "a/n.md"])
        ActionPlanner(placement_mode="same-folder-as-note", multi_backlink_policy="pick-first").plan_entry(entry)
        assert entry.action == MoveTo(target="b/img.png", reason="multi-pick-first")

    def test_multi_pick_first_explicit(self):
        """An explicit path on the first backlink wins over the placement policy."""
        entry = _entry("img.png")
        entry.add_backlink(
            Backlink(from_note="a/n.md", raw="pics/img.png", cleaned="pics/img.png", explicit_path="pics/img.png")
        )
        entry.add_backlink(Backlink(from_note="b/n.md", raw="img.png", cleaned="img.png"))
        ActionPlanner(multi_backlink_policy="pick-first").plan_entry(entry)
        assert entry.action == MoveTo(target="pics/img.png", reason="multi-pick-first", explicit=True)

    def test_multi_pick_first_ignores_later_explicit(self):
        entry = _entry("img.png", notes=["a/n.md"])
        entry.add_backlink(
            Backlink(from_note="b/n.md", raw="pics/img.png", cleaned="pics/img.png", explicit_path="pics/img.png")
        )
        ActionPlanner(multi_backlink_policy="pick-first").plan_entry(entry)
        assert entry.action == MoveTo(target="a/attachments/img.png", reason="multi-pick-first")

    def test_multi_lca(self):
        entry = _entry("diagram.png", notes=["proj/web/a.md", "proj/api/b.md"])
        planner = ActionPlanner(subfolder_name="assets", multi_backlink_policy="lca")
        planner.plan_entry(entry)
        assert entry.action == MoveTo(target="proj/assets/diagram.png", reason="multi-lca")

    def test_staging_zone_is_terminal(self):
        entry = _entry("Draft/img.png", zone=Zone.B)
        ActionPlanner().plan_entry(entry)
        assert entry.action == Keep()
        assert entry.tags == []

    def test_out_zone_forced_keep(self):
        entry = _entry("Elsewhere/img.png", zone=Zone.OUT, notes=["n.md"])
        ActionPlanner().plan_entry(entry)
        assert entry.action == Keep()

    def test_out_zone_planned_when_enabled(self):
        entry = _entry("Elsewhere/img.png", zone=Zone.OUT, notes=["n.md"])
        ActionPlanner(plan_out_attachments=True).plan_entry(entry)
        assert isinstance(entry.action, MoveTo)

    def test_notes_are_ignored(self):
        entry = _entry("n.md", kind=FileKind.NOTE)
        ActionPlanner().plan_entry(entry)
        assert entry.action == Keep()
        assert entry.tags == []

    def test_unknown_mode_keeps(self):
        entry = _entry("img.png", notes=["n.md"])
        ActionPlanner(placement_mode="nowhere").plan_entry(entry)
        assert entry.action == Keep()
