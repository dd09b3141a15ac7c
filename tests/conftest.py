"""Pytest configuration and fixtures for attachment organizer tests"""

import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import pytest

# Ensure src directory is in Python path before any imports
project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from attachment_organizer.engine import Organizer
from attachment_organizer.exceptions import VaultOperationError
from attachment_organizer.logging_config import PACKAGE_LOGGER
from attachment_organizer.paths import basename, dirname, normalize_path
from attachment_organizer.ports import (MetadataProvider, NoteLinks,
                                        VaultFile, VaultProvider)
from attachment_organizer.settings import OrganizerSettings
from attachment_organizer.undo import UndoLedger


class FakeVault(VaultProvider):
    """In-memory vault: a set of file paths plus the folders that hold them."""

    def __init__(self, files: Iterable[str] = ()):
        self.files: List[str] = []
        self.folders: Set[str] = set()
        self.fail_rename: Set[str] = set()
        self.renames: List[tuple] = []
        for f in files:
            self.add(f)

    def _register_folders(self, path: str) -> None:
        folder = dirname(path)
        while folder:
            self.folders.add(folder)
            folder = dirname(folder)

    def add(self, path: str) -> None:
        p = normalize_path(path)
        if p not in self.files:
            self.files.append(p)
            self._register_folders(p)

    def remove(self, path: str) -> None:
        self.files.remove(normalize_path(path))

    def list_files(self) -> List[VaultFile]:
        return [VaultFile(p) for p in sorted(self.files)]

    def list_folder(self, path: str, recursive: bool) -> List[VaultFile]:
        root = normalize_path(path)
        out = []
        for p in sorted(self.files):
            if root and not p.startswith(root + "/"):
                continue
            rest = p[len(root) + 1:] if root else p
            if not recursive and "/" in rest:
                continue
            out.append(VaultFile(p))
        return out

    def folder_exists(self, path: str) -> bool:
        p = normalize_path(path)
        return p == "" or p in self.folders

    def get_file_at(self, path: str) -> Optional[VaultFile]:
        p = normalize_path(path)
        return VaultFile(p) if p in self.files else None

    def create_folder(self, path: str) -> None:
        p = normalize_path(path)
        self.folders.add(p)
        self._register_folders(p)

    def rename_file(self, path: str, new_path: str) -> None:
        src, dst = normalize_path(path), normalize_path(new_path)
        if src in self.fail_rename:
            raise VaultOperationError(f"Simulated rename failure: {src}", path=src)
        if src not in self.files:
            raise VaultOperationError(f"Source file does not exist: {src}", path=src)
        if dst in self.files:
            raise VaultOperationError(f"Destination already exists: {dst}", path=dst)
        self.files[self.files.index(src)] = dst
        self._register_folders(dst)
        self.renames.append((src, dst))


class FakeMetadata(MetadataProvider):
    """In-memory link table with a simple best-match resolver.

    Resolution: an alias registered with `alias()`, then the exact path (with
    or without `.md`), then the alphabetically first file with that basename.
    """

    def __init__(self, vault: FakeVault):
        self.vault = vault
        self.notes: Dict[str, NoteLinks] = {}
        self.aliases: Dict[str, str] = {}
        self.invalidations = 0

    def set_links(self, note: str, links=(), embeds=(), frontmatter=()) -> None:
        self.vault.add(note)
        self.notes[note] = NoteLinks(list(links), list(embeds), list(frontmatter))

    def alias(self, key: str, path: str) -> None:
        self.aliases[key] = path

    def invalidate(self) -> None:
        self.invalidations += 1

    def get_links(self, note_path: str) -> Optional[NoteLinks]:
        if self.vault.get_file_at(note_path) is None:
            return None
        return self.notes.get(note_path, NoteLinks())

    def resolve_link(self, key: str, from_note_path: str) -> Optional[VaultFile]:
        if key in self.aliases:
            return self.vault.get_file_at(self.aliases[key])
        k = normalize_path(key)
        for candidate in (k, f"{k}.md"):
            found = self.vault.get_file_at(candidate)
            if found is not None:
                return found
        if "/" in k:
            return None
        matches = sorted(p for p in self.vault.files if basename(p) in (k, f"{k}.md"))
        return VaultFile(matches[0]) if matches else None


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by CLI runs so later tests never log to a closed stream."""
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def vault():
    """Empty in-memory vault."""
    return FakeVault()


@pytest.fixture
def metadata(vault):
    """Link table bound to the `vault` fixture."""
    return FakeMetadata(vault)


@pytest.fixture
def settings():
    """Default settings with the staging folder at `Draft`."""
    return OrganizerSettings()


@pytest.fixture
def make_organizer(vault, metadata):
    """Factory building an Organizer over the in-memory fakes."""

    def _make(settings: Optional[OrganizerSettings] = None, **kwargs) -> Organizer:
        kwargs.setdefault("undo_ledger", UndoLedger())
        return Organizer(vault, metadata, settings or OrganizerSettings(), **kwargs)

    return _make
