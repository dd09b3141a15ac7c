"""Organizer data model.

Defines the entries, actions and reports produced by a detection pass, plus
the move/undo records produced by applying a plan. Everything in a
`DetectReport` is rebuilt from scratch on each scan.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Union

MISSING_PREFIX = "__missing/"


class Zone(str, Enum):
    """Region of the vault an entry lives in."""

    A = "A"  # primary workspace
    B = "B"  # staging / cleanup area
    C = "C"  # configured extra-scan folders
    OUT = "OUT"  # everything else


class FileKind(str, Enum):
    """What kind of file an entry is."""

    NOTE = "note-md"
    ATTACHMENT_FILE = "attachment-file"
    ATTACHMENT_NOTE = "attachment-md"  # markdown matched by an attachment rule
    UNKNOWN = "unknown"  # placeholder for an unresolved reference

    @property
    def is_attachment(self) -> bool:
        return self in (FileKind.ATTACHMENT_FILE, FileKind.ATTACHMENT_NOTE)


class EntryTag(str, Enum):
    """Status tags attached to an entry during detection."""

    MISSING = "missing"
    ORPHAN = "orphan"
    CONFLICT_TARGET_OCCUPIED = "conflict-target-occupied"
    CONFLICT_AMBIGUOUS_NAME = "conflict-ambiguous-name"


CONFLICT_TAGS = (EntryTag.CONFLICT_TARGET_OCCUPIED, EntryTag.CONFLICT_AMBIGUOUS_NAME)


class Mark(str, Enum):
    """Single-character status shown to the user per entry."""

    NOTE = "-"
    KEEP = "K"
    STAGE = "B"
    RELOCATE = "R"
    MISSING = "M"
    CONFLICT = "C"


@dataclass(frozen=True)
class Backlink:
    """A reference from a note to a file."""

    from_note: str
    raw: str
    cleaned: str
    explicit_path: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "from": self.from_note,
            "raw": self.raw,
            "cleaned": self.cleaned,
            "explicit_path": self.explicit_path,
        }


@dataclass(frozen=True)
class Keep:
    """Leave the file where it is."""

    type = "keep"

    def to_dict(self) -> dict:
        return {"type": self.type}


@dataclass(frozen=True)
class MoveToStaging:
    """Move the file into the staging zone."""

    reason: str
    type = "moveToStaging"

    def to_dict(self) -> dict:
        return {"type": self.type, "reason": self.reason}


@dataclass(frozen=True)
class MoveTo:
    """Move the file to an exact vault path."""

    target: str
    reason: str
    explicit: bool = False
    type = "moveTo"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "target": self.target,
            "reason": self.reason,
            "explicit": self.explicit,
        }


@dataclass(frozen=True)
class UnknownAction:
    """No decision possible (e.g. the referenced file does not exist)."""

    reason: str
    type = "unknown"

    def to_dict(self) -> dict:
        return {"type": self.type, "reason": self.reason}


Action = Union[Keep, MoveToStaging, MoveTo, UnknownAction]


def is_planned_move(action: Action) -> bool:
    """True for the two actions that relocate a file."""
    return isinstance(action, (MoveToStaging, MoveTo))


@dataclass
class FileEntry:
    """One node of the detection graph, keyed by its normalized path."""

    path: str
    display_name: str
    zone: Zone
    kind: FileKind
    referenced_by_notes: List[Backlink] = field(default_factory=list)
    action: Action = field(default_factory=Keep)
    tags: List[EntryTag] = field(default_factory=list)
    conflict_with: Optional[List[str]] = None

    # Only set on preview copies
    virtual_from: Optional[str] = None
    is_preview: bool = False

    @property
    def is_missing(self) -> bool:
        return EntryTag.MISSING in self.tags

    @property
    def is_conflict(self) -> bool:
        return any(tag in self.tags for tag in CONFLICT_TAGS)

    def add_tag(self, tag: EntryTag) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def add_backlink(self, backlink: Backlink) -> bool:
        """Record a backlink unless its source note is already recorded.

        Returns:
            True if the backlink was added
        """
        if any(bl.from_note == backlink.from_note for bl in self.referenced_by_notes):
            return False
        self.referenced_by_notes.append(backlink)
        return True

    def preview_copy(self, target: str, zone: Zone) -> "FileEntry":
        """Virtual copy of this entry placed at its planned destination."""
        return replace(
            self,
            path=target,
            display_name=target.rsplit("/", 1)[-1],
            zone=zone,
            referenced_by_notes=list(self.referenced_by_notes),
            tags=list(self.tags),
            conflict_with=list(self.conflict_with) if self.conflict_with else None,
            virtual_from=self.path,
            is_preview=True,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = {
            "path": self.path,
            "display_name": self.display_name,
            "zone": self.zone.value,
            "kind": self.kind.value,
            "mark": mark_of(self).value,
            "referenced_by_notes": [bl.to_dict() for bl in self.referenced_by_notes],
            "action": self.action.to_dict(),
            "tags": [tag.value for tag in self.tags],
        }
        if self.conflict_with is not None:
            data["conflict_with"] = list(self.conflict_with)
        if self.is_preview:
            data["virtual_from"] = self.virtual_from
            data["is_preview"] = True
        return data


def mark_of(entry: FileEntry) -> Mark:
    """Derive the display mark from kind, tags and action."""
    if entry.kind == FileKind.NOTE:
        return Mark.NOTE
    if entry.is_missing:
        return Mark.MISSING
    if entry.is_conflict:
        return Mark.CONFLICT
    if isinstance(entry.action, Keep):
        return Mark.KEEP
    if isinstance(entry.action, MoveTo):
        return Mark.RELOCATE
    return Mark.STAGE


@dataclass(frozen=True)
class ReportStats:
    """Counters summarizing a detection pass."""

    notes: int = 0
    attachments: int = 0
    todo: int = 0  # entries marked B/R/M/C
    missing: int = 0
    conflicts: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "notes": self.notes,
            "attachments": self.attachments,
            "todo": self.todo,
            "missing": self.missing,
            "conflicts": self.conflicts,
            "total": self.total,
        }


@dataclass(frozen=True)
class DetectReport:
    """Immutable snapshot produced by one detection pass."""

    entries: List[FileEntry]
    preview: List[FileEntry]
    stats: ReportStats

    def get(self, path: str) -> Optional[FileEntry]:
        """Look up a real entry by path."""
        for entry in self.entries:
            if entry.path == path:
                return entry
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "entries": [e.to_dict() for e in self.entries],
            "preview": [p.to_dict() for p in self.preview],
            "stats": self.stats.to_dict(),
        }


@dataclass(frozen=True)
class Move:
    """A single file relocation."""

    source: str
    target: str

    def reversed(self) -> "Move":
        return Move(source=self.target, target=self.source)

    def to_dict(self) -> dict:
        return {"from": self.source, "to": self.target}

    @classmethod
    def from_dict(cls, data: dict) -> "Move":
        return cls(source=data["from"], target=data["to"])


@dataclass
class UndoEntry:
    """Record of one successfully applied batch."""

    timestamp: float
    moves: List[Move]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp,
            "moves": [m.to_dict() for m in self.moves],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UndoEntry":
        """Create from dictionary."""
        return cls(
            timestamp=float(data["timestamp"]),
            moves=[Move.from_dict(m) for m in data.get("moves", [])],
        )


@dataclass
class ApplySummary:
    """Outcome of applying a plan."""

    moved: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    moves: List[Move] = field(default_factory=list)
    message: str = ""
    cancelled: bool = False


@dataclass
class UndoSummary:
    """Outcome of undoing the last applied batch."""

    restored: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    message: str = ""
    cancelled: bool = False
