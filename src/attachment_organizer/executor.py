"""Move execution.

Applies a list of moves one at a time. This is a best-effort batch, not a
transaction: each failure is recorded and the remaining moves still run.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from .exceptions import VaultOperationError
from .models import Move
from .paths import dirname, normalize_path
from .ports import VaultProvider

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Per-batch outcome: the moves that succeeded and one error per failure."""

    succeeded: List[Move] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)


class MoveExecutor:
    """Executes file moves against a vault provider."""

    def __init__(self, vault: VaultProvider):
        self.vault = vault

    def ensure_folder_exists(self, folder: str) -> None:
        """Create every missing segment of a folder path.

        A segment that appears between the existence check and the create
        call (another writer got there first) is not an error.
        """
        p = normalize_path(folder or "")
        if not p:
            return

        current = ""
        for part in p.split("/"):
            current = f"{current}/{part}" if current else part
            if self.vault.folder_exists(current):
                continue
            try:
                self.vault.create_folder(current)
            except (VaultOperationError, OSError) as e:
                logger.debug(f"[Apply] Folder {current} not created (ignored): {e}")

    def execute(self, moves: Iterable[Move]) -> BatchResult:
        """Run moves sequentially, collecting successes and failures."""
        result = BatchResult()

        for move in moves:
            if self.vault.get_file_at(move.source) is None:
                result.errors.append(f"{move.source}: file not found")
                logger.warning(f"[Apply] Source missing, skipped: {move.source}")
                continue

            try:
                self.ensure_folder_exists(dirname(move.target))
                self.vault.rename_file(move.source, move.target)
            except (VaultOperationError, OSError) as e:
                result.errors.append(f"{move.source}: {e}")
                logger.warning(f"[Apply] Failed to move {move.source} -> {move.target}: {e}")
                continue

            result.succeeded.append(move)
            logger.debug(f"[Apply] Moved {move.source} -> {move.target}")

        return result
