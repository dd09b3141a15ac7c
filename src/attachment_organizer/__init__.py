"""Attachment organizer for markdown note vaults.

Detects where each attachment in a vault should live relative to the notes
that reference it, simulates the whole batch of moves to find collisions, and
applies (and undoes) the conflict-free subset.

Usage:
    from attachment_organizer import Organizer, LocalVault, MarkdownMetadata, load_settings

    vault = LocalVault("/path/to/vault")
    organizer = Organizer(vault, MarkdownMetadata(vault), load_settings(vault.root))
    report = organizer.detect_report(force=True)
"""

from .engine import Organizer
from .filesystem import LocalVault, MarkdownMetadata
from .models import (Action, Backlink, DetectReport, FileEntry, FileKind,
                     Keep, MoveTo, MoveToStaging, UndoEntry, UnknownAction,
                     Zone)
from .settings import OrganizerSettings, load_settings, save_settings

__version__ = "0.3.0"

__all__ = [
    "Organizer",
    "LocalVault",
    "MarkdownMetadata",
    "Action",
    "Backlink",
    "DetectReport",
    "FileEntry",
    "FileKind",
    "Keep",
    "MoveTo",
    "MoveToStaging",
    "UndoEntry",
    "UnknownAction",
    "Zone",
    "OrganizerSettings",
    "load_settings",
    "save_settings",
]
