"""Conflict simulation.

Runs every proposed move through a single deterministic pass before anything
touches the disk. Candidates are visited in source-path order; each one is
checked against the targets already claimed in this pass, against files that
already exist, and (optionally) against every file name in the vault. A
collision reverts the move to Keep and tags the entry; when the collision is
with another candidate, that candidate is reverted too and its claim is
removed from the side indices.

Limitation: a reverted entry is never reconsidered in the same pass, even
when its rollback frees a target another candidate could now use.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .models import (EntryTag, FileEntry, Keep, MoveTo, MoveToStaging, Zone,
                     is_planned_move)
from .paths import (basename, collapse_dots, folder_key, join, name_key,
                    normalize_path)
from .ports import VaultProvider

logger = logging.getLogger(__name__)

GLOBAL_NAME_CHECK_MODES = ("off", "on-ignore-explicit", "on-even-explicit")

# Colliding paths recorded on an ambiguous-name conflict
MAX_CONFLICT_WITH = 3


@dataclass(frozen=True)
class _Claim:
    key: str
    folder_name: Tuple[str, str]
    name: Optional[str]


class _SimulationPass:
    """Side indices for one simulation pass, discarded afterwards."""

    def __init__(self, entries: Mapping[str, FileEntry]):
        self.entries = entries
        self.planned_targets: Dict[str, str] = {}
        self.planned_folder_name: Dict[Tuple[str, str], str] = {}
        self.planned_name: Dict[str, str] = {}
        self.claims: Dict[str, _Claim] = {}
        self.preview: Dict[str, FileEntry] = {}

    def claim(self, entry: FileEntry, target: str, check_name: bool, zone: Zone) -> None:
        key = collapse_dots(target)
        folder_name = (folder_key(key), name_key(key))
        nk = name_key(key) if check_name else None

        self.planned_targets[key] = entry.path
        self.planned_folder_name[folder_name] = entry.path
        if nk is not None:
            self.planned_name[nk] = entry.path

        self.claims[entry.path] = _Claim(key=key, folder_name=folder_name, name=nk)
        self.preview[entry.path] = entry.preview_copy(target, zone)

    def release(self, source: str) -> None:
        claim = self.claims.pop(source, None)
        if claim is None:
            return
        if self.planned_targets.get(claim.key) == source:
            del self.planned_targets[claim.key]
        if self.planned_folder_name.get(claim.folder_name) == source:
            del self.planned_folder_name[claim.folder_name]
        if claim.name is not None and self.planned_name.get(claim.name) == source:
            del self.planned_name[claim.name]
        self.preview.pop(source, None)

    def revert(self, entry: FileEntry, tag: EntryTag) -> None:
        entry.add_tag(tag)
        entry.action = Keep()
        self.release(entry.path)

    def revert_both(self, entry: FileEntry, other_path: str, tag: EntryTag) -> None:
        self.revert(entry, tag)
        other = self.entries.get(other_path)
        if other is not None:
            self.revert(other, tag)


class ConflictSimulator:
    """Finds every collision in a batch of proposed moves."""

    def __init__(
        self,
        vault: VaultProvider,
        staging_root: str,
        global_name_check: str = "on-ignore-explicit",
        zone_of: Callable[[str], Zone] = lambda path: Zone.OUT,
    ):
        """
        Initialize the simulator.

        Args:
            vault: Vault provider, used to find files occupying a target
            staging_root: Folder that MoveToStaging actions move into
            global_name_check: One of GLOBAL_NAME_CHECK_MODES
            zone_of: Zone classifier applied to preview targets
        """
        self.vault = vault
        self.staging_root = normalize_path(staging_root or "")
        self.global_name_check = global_name_check
        self.zone_of = zone_of

    def target_of(self, entry: FileEntry) -> Optional[str]:
        """Resolved destination of a planned move, or None."""
        action = entry.action
        if isinstance(action, MoveTo):
            return normalize_path(action.target)
        if isinstance(action, MoveToStaging):
            if not self.staging_root:
                return None
            return join(self.staging_root, basename(entry.path))
        return None

    def _checks_global_name(self, entry: FileEntry) -> bool:
        mode = self.global_name_check
        if mode == "off":
            return False
        explicit_move = isinstance(entry.action, MoveTo) and entry.action.explicit
        return mode == "on-even-explicit" or not explicit_move

    def _existing_by_name(self) -> Dict[str, List[str]]:
        index: Dict[str, List[str]] = {}
        for f in self.vault.list_files():
            index.setdefault(name_key(f.path), []).append(f.path)
        return index

    def simulate(self, entries: Mapping[str, FileEntry]) -> List[FileEntry]:
        """Run the pass, mutating entry actions/tags, and return the preview.

        Args:
            entries: The detection arena keyed by path

        Returns:
            Preview entries for the conflict-free moves, in source-path order
        """
        existing_by_name = self._existing_by_name()
        state = _SimulationPass(entries)

        candidates = sorted(
            (
                e
                for e in entries.values()
                if e.kind.is_attachment and not e.is_missing and is_planned_move(e.action)
            ),
            key=lambda e: e.path,
        )

        for entry in candidates:
            if entry.is_conflict:
                continue

            target = self.target_of(entry)
            # Index lookups compare the target with dot segments resolved
            key = collapse_dots(target)
            if not target or key == normalize_path(entry.path):
                entry.action = Keep()
                continue

            # (1) another candidate already claimed this exact target
            claimed_by = state.planned_targets.get(key)
            if claimed_by:
                state.revert_both(entry, claimed_by, EntryTag.CONFLICT_TARGET_OCCUPIED)
                continue

            # (2) a file already exists at the target
            occupant = self.vault.get_file_at(target)
            if occupant is not None and normalize_path(occupant.path) == entry.path:
                # The host resolves the target spelling to the file itself
                entry.action = Keep()
                continue
            if occupant is not None:
                state.revert(entry, EntryTag.CONFLICT_TARGET_OCCUPIED)
                tracked = entries.get(normalize_path(occupant.path))
                if tracked is not None:
                    state.revert(tracked, EntryTag.CONFLICT_TARGET_OCCUPIED)
                continue

            # (3) same folder + folded name claimed under a different spelling
            folder_hit = state.planned_folder_name.get((folder_key(key), name_key(key)))
            if folder_hit:
                state.revert_both(entry, folder_hit, EntryTag.CONFLICT_TARGET_OCCUPIED)
                continue

            # (4) ambiguous name across the vault
            check_name = self._checks_global_name(entry)
            if check_name:
                nk = name_key(key)
                name_hit = state.planned_name.get(nk)
                if name_hit:
                    state.revert_both(entry, name_hit, EntryTag.CONFLICT_AMBIGUOUS_NAME)
                    continue

                others = [p for p in existing_by_name.get(nk, []) if normalize_path(p) != entry.path]
                if others:
                    entry.conflict_with = others[:MAX_CONFLICT_WITH]
                    state.revert(entry, EntryTag.CONFLICT_AMBIGUOUS_NAME)
                    continue

            state.claim(entry, target, check_name, self.zone_of(target))

        preview = list(state.preview.values())
        logger.debug(f"[Detect] Simulated {len(candidates)} candidate move(s), {len(preview)} conflict-free")
        return preview
