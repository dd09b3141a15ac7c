"""Bounded undo history.

A fixed-capacity FIFO of applied batches: pushing beyond capacity evicts the
oldest entry, undo pops the newest. The history lives in memory; when a
storage path is given it is also mirrored to a JSON file so a separate
process (the CLI) can undo a batch applied earlier.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from .models import UndoEntry

logger = logging.getLogger(__name__)

MAX_UNDO_HISTORY = 10


class UndoLedger:
    """Ring buffer of UndoEntry records."""

    def __init__(self, capacity: int = MAX_UNDO_HISTORY, storage_path: Optional[Path] = None):
        """Initialize the ledger.

        Args:
            capacity: Maximum number of entries kept
            storage_path: Optional JSON file mirroring the history
        """
        if capacity < 1:
            raise ValueError("Undo history capacity must be at least 1")
        self.capacity = capacity
        self.storage_path = Path(storage_path) if storage_path else None
        self._entries: List[UndoEntry] = []

        self._load_state()

    def _load_state(self) -> None:
        """Load existing history from storage."""
        if self.storage_path is None or not self.storage_path.exists():
            return

        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
            self._entries = [UndoEntry.from_dict(item) for item in data.get("entries", [])]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"[Undo] Failed to load undo history from {self.storage_path}: {e}")
            self._entries = []

        self._evict()

    def _save_state(self) -> None:
        """Save history to storage."""
        if self.storage_path is None:
            return

        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            self.storage_path.write_text(
                json.dumps({"entries": [e.to_dict() for e in self._entries]}, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"[Undo] Failed to save undo history to {self.storage_path}: {e}")

    def _evict(self) -> int:
        evicted = 0
        while len(self._entries) > self.capacity:
            self._entries.pop(0)
            evicted += 1
        return evicted

    def push(self, entry: UndoEntry) -> None:
        """Record a batch, evicting the oldest entries beyond capacity."""
        self._entries.append(entry)
        evicted = self._evict()
        if evicted:
            logger.debug(f"[Undo] Evicted {evicted} oldest undo entr{'y' if evicted == 1 else 'ies'}")
        self._save_state()

    def pop(self) -> Optional[UndoEntry]:
        """Remove and return the most recent batch, if any."""
        if not self._entries:
            return None
        entry = self._entries.pop()
        self._save_state()
        return entry

    def peek(self) -> Optional[UndoEntry]:
        return self._entries[-1] if self._entries else None

    def can_undo(self) -> bool:
        return bool(self._entries)

    def entries(self) -> List[UndoEntry]:
        """Copy of the history, oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
