"""Host capabilities the organizer depends on.

The organizer never touches the file system or parses notes directly; it
talks to a vault provider (listing, lookup, folder creation, rename) and a
metadata provider (link extraction and best-match link resolution). The
`filesystem` module ships implementations backed by a local directory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class VaultFile:
    """A file that exists in the vault."""

    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def extension(self) -> str:
        name = self.name
        return name.rsplit(".", 1)[-1].lower() if "." in name else ""


@dataclass
class NoteLinks:
    """Raw link targets found in one note, grouped by source."""

    links: List[str] = field(default_factory=list)
    embeds: List[str] = field(default_factory=list)
    frontmatter_links: List[str] = field(default_factory=list)


class VaultProvider(ABC):
    """File-system primitives of the host vault."""

    @abstractmethod
    def list_files(self) -> List[VaultFile]:
        """Every file in the vault."""

    @abstractmethod
    def list_folder(self, path: str, recursive: bool) -> List[VaultFile]:
        """Files under a folder ("" is the vault root)."""

    @abstractmethod
    def folder_exists(self, path: str) -> bool:
        """True when `path` is an existing folder."""

    @abstractmethod
    def get_file_at(self, path: str) -> Optional[VaultFile]:
        """The file at exactly `path`, or None."""

    @abstractmethod
    def create_folder(self, path: str) -> None:
        """Create a folder; an existing folder is not an error."""

    @abstractmethod
    def rename_file(self, path: str, new_path: str) -> None:
        """Move a file.

        Raises:
            VaultOperationError: If the source is missing or the move fails
        """

    def invalidate(self) -> None:
        """Drop any cached listing; called before each detection pass."""


class MetadataProvider(ABC):
    """Note metadata and link resolution of the host vault."""

    @abstractmethod
    def get_links(self, note_path: str) -> Optional[NoteLinks]:
        """Raw links of a note, or None when no metadata is available."""

    @abstractmethod
    def resolve_link(self, key: str, from_note_path: str) -> Optional[VaultFile]:
        """Best-match file for a link key as seen from a note, or None."""

    def invalidate(self) -> None:
        """Drop any cached link or index state; called before each detection pass."""
