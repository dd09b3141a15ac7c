"""Action planning.

Decides, for each attachment, whether it stays, moves next to the note(s)
that reference it, or goes to staging. The planner only proposes; the
conflict simulator decides which proposals are safe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

from .models import (Action, Backlink, EntryTag, FileEntry, Keep, MoveTo,
                     MoveToStaging, Zone)
from .paths import basename, dirname, join, lca_folder, normalize_path

if TYPE_CHECKING:
    from .settings import OrganizerSettings

PLACEMENT_MODES = (
    "vault-folder",
    "specified-folder",
    "same-folder-as-note",
    "subfolder-under-note",
)

MULTI_BACKLINK_POLICIES = ("unchanged", "lca", "pick-first")


class ActionPlanner:
    """Assigns an action to every plannable attachment entry."""

    def __init__(
        self,
        placement_mode: str = "subfolder-under-note",
        specified_folder: str = "",
        subfolder_name: str = "attachments",
        multi_backlink_policy: str = "unchanged",
        plan_out_attachments: bool = False,
    ):
        self.placement_mode = placement_mode
        self.specified_folder = specified_folder
        self.subfolder_name = subfolder_name
        self.multi_backlink_policy = multi_backlink_policy
        self.plan_out_attachments = plan_out_attachments

    @classmethod
    def from_settings(cls, settings: "OrganizerSettings") -> "ActionPlanner":
        return cls(
            placement_mode=settings.placement.mode,
            specified_folder=settings.placement.specified_folder,
            subfolder_name=settings.placement.subfolder_name,
            multi_backlink_policy=settings.multi_backlink_policy,
            plan_out_attachments=settings.plan_out_attachments,
        )

    def target_folder(self, base_folder: str) -> Optional[str]:
        """Apply the placement policy to a base folder.

        Args:
            base_folder: Folder derived from the referencing note(s)

        Returns:
            Destination folder ("" is the vault root), or None for an
            unrecognized placement mode
        """
        mode = self.placement_mode
        if mode == "vault-folder":
            return ""
        if mode == "specified-folder":
            return normalize_path(self.specified_folder or "")
        if mode == "same-folder-as-note":
            return normalize_path(base_folder or "")
        if mode == "subfolder-under-note":
            sub = normalize_path(self.subfolder_name or "")
            if not sub:
                return normalize_path(base_folder or "")
            return join(base_folder, sub)
        return None

    def _policy_move(self, entry: FileEntry, base_folder: str, reason: str) -> Optional[Action]:
        folder = self.target_folder(base_folder)
        if folder is None:
            return None
        return MoveTo(target=join(folder, basename(entry.path)), reason=reason)

    def plan_single(self, entry: FileEntry, backlink: Backlink) -> Optional[Action]:
        """Plan for an attachment referenced by exactly one note."""
        # An explicit path in the link beats the placement policy
        if backlink.explicit_path:
            return MoveTo(
                target=backlink.explicit_path,
                reason="single-backlink-explicit",
                explicit=True,
            )
        return self._policy_move(entry, dirname(backlink.from_note), "single-backlink-policy")

    def plan_multi(self, entry: FileEntry) -> Optional[Action]:
        """Plan for an attachment referenced by several notes."""
        backlinks = entry.referenced_by_notes
        if len(backlinks) < 2:
            return None

        policy = self.multi_backlink_policy
        if policy == "pick-first":
            first = backlinks[0]
            if first.explicit_path:
                return MoveTo(target=first.explicit_path, reason="multi-pick-first", explicit=True)
            return self._policy_move(entry, dirname(first.from_note), "multi-pick-first")
        if policy == "lca":
            folders = [dirname(bl.from_note) for bl in backlinks]
            return self._policy_move(entry, lca_folder(folders), "multi-lca")
        return None

    def plan_entry(self, entry: FileEntry) -> None:
        """Set the action of one entry in place; non-attachments are ignored."""
        if not entry.kind.is_attachment or entry.is_missing:
            return
        # Staging is terminal
        if entry.zone == Zone.B:
            return
        if entry.zone == Zone.OUT and not self.plan_out_attachments:
            entry.action = Keep()
            return

        count = len(entry.referenced_by_notes)
        if count == 0:
            entry.action = MoveToStaging(reason="orphan")
            entry.add_tag(EntryTag.ORPHAN)
            return

        if count == 1:
            plan = self.plan_single(entry, entry.referenced_by_notes[0])
        else:
            plan = self.plan_multi(entry)
        entry.action = plan or Keep()

    def plan(self, entries: Iterable[FileEntry]) -> None:
        for entry in entries:
            self.plan_entry(entry)
