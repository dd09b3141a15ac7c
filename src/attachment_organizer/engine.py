"""Organizer orchestrator.

Runs the detection pipeline (inventory -> backlinks -> planning -> conflict
simulation) over one snapshot of the vault, and applies or undoes the
resulting conflict-free moves.

The entry map built by a detection pass is private to that pass; the only
state that outlives a call is the cached report, the dirty flag, the
debounce timer and the undo ledger, all owned here.

Usage:
    organizer = Organizer(vault, metadata, settings)
    report = organizer.detect_report(force=True)
    summary = organizer.apply_plan()
    organizer.undo_last_operation()
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from .backlinks import BacklinkResolver
from .classifier import compile_attachment_rules, kind_of
from .config import config
from .executor import MoveExecutor
from .logging_config import correlation_scope
from .models import (MISSING_PREFIX, ApplySummary, DetectReport, EntryTag,
                     FileEntry, FileKind, Keep, Mark, Move, ReportStats,
                     UndoEntry, UndoSummary, UnknownAction, Zone,
                     is_planned_move, mark_of)
from .paths import basename, is_within, normalize_path
from .planner import ActionPlanner
from .ports import MetadataProvider, VaultFile, VaultProvider
from .settings import OrganizerSettings
from .simulator import ConflictSimulator
from .undo import UndoLedger
from .zones import classify_zone

logger = logging.getLogger(__name__)

# (title, message, moves) -> proceed?
ConfirmCallback = Callable[[str, str, List[Move]], bool]

TODO_MARKS = (Mark.STAGE, Mark.RELOCATE, Mark.MISSING, Mark.CONFLICT)

# Moves listed in a confirmation message before summarizing the rest
CONFIRM_PREVIEW_LIMIT = 5


def _describe_moves(moves: List[Move]) -> str:
    lines = [f"- {basename(m.source)} -> {m.target}" for m in moves[:CONFIRM_PREVIEW_LIMIT]]
    if len(moves) > CONFIRM_PREVIEW_LIMIT:
        lines.append(f"... and {len(moves) - CONFIRM_PREVIEW_LIMIT} more")
    return "\n".join(lines)


class Organizer:
    """Detects, applies and undoes attachment moves for one vault."""

    def __init__(
        self,
        vault: VaultProvider,
        metadata: MetadataProvider,
        settings: Optional[OrganizerSettings] = None,
        undo_ledger: Optional[UndoLedger] = None,
        debounce_seconds: Optional[float] = None,
        on_refresh: Optional[Callable[[DetectReport], None]] = None,
    ):
        """
        Initialize the organizer.

        Args:
            vault: Vault provider
            metadata: Metadata provider
            settings: Organizing rules (defaults when omitted)
            undo_ledger: Undo history (a fresh in-memory ledger when omitted)
            debounce_seconds: Delay collapsing bursts of change events
            on_refresh: Receives the report of each debounced rescan; without
                it, change events only mark the snapshot dirty
        """
        self.vault = vault
        self.metadata = metadata
        self.settings = settings or OrganizerSettings()
        self.undo = undo_ledger if undo_ledger is not None else UndoLedger()
        self.executor = MoveExecutor(vault)
        self.debounce_seconds = (
            config.refresh_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.on_refresh = on_refresh

        self._rules = compile_attachment_rules(self.settings.user_rule_lines())
        self._last_report: Optional[DetectReport] = None
        self._dirty = True
        self._refresh_timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # configuration
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return self._dirty

    def update_settings(self, settings: OrganizerSettings) -> None:
        """Swap in new settings, recompile rules and invalidate the snapshot."""
        self.settings = settings
        self._rules = compile_attachment_rules(settings.user_rule_lines())
        self.mark_dirty_and_schedule_refresh()

    def zone_of(self, path: str) -> Zone:
        s = self.settings
        return classify_zone(path, s.zone_a, s.zone_b, s.active_extra_folders())

    def kind_of(self, path: str) -> FileKind:
        return kind_of(path, self._rules)

    # ------------------------------------------------------------------
    # change tracking
    # ------------------------------------------------------------------

    def notify_vault_changed(self) -> None:
        """Hook for host file-system events (create/delete/rename/modify)."""
        self.mark_dirty_and_schedule_refresh()

    def mark_dirty_and_schedule_refresh(self) -> None:
        """Mark the snapshot stale and restart the debounce timer."""
        with self._lock:
            self._dirty = True
            self.cancel_pending_refresh()
            if self.on_refresh is None:
                return

            timer = threading.Timer(self.debounce_seconds, self._run_scheduled_refresh)
            timer.daemon = True
            self._refresh_timer = timer
            timer.start()

    def cancel_pending_refresh(self) -> None:
        with self._lock:
            if self._refresh_timer is not None:
                self._refresh_timer.cancel()
                self._refresh_timer = None

    def flush_pending_refresh(self) -> Optional[DetectReport]:
        """Run a pending debounced rescan now instead of waiting for it."""
        with self._lock:
            if self._refresh_timer is None:
                return None
            self.cancel_pending_refresh()
            return self._refresh()

    def _refresh(self) -> DetectReport:
        report = self.detect_report(force=True)
        if self.on_refresh is not None:
            self.on_refresh(report)
        return report

    def _run_scheduled_refresh(self) -> None:
        with self._lock:
            # A newer timer replaced this one while it was waiting for the lock
            if self._refresh_timer is not threading.current_thread():
                return
            self._refresh_timer = None
            try:
                self._refresh()
            except Exception:
                logger.exception("[Detect] Scheduled rescan failed")

    # ------------------------------------------------------------------
    # inventory
    # ------------------------------------------------------------------

    def scan_inventory_files(self) -> List[VaultFile]:
        """Files of the workspace, staging and extra-scan areas, deduplicated."""
        s = self.settings
        out: List[VaultFile] = []
        seen = set()

        def scan_folder(folder: str) -> None:
            for f in self.vault.list_folder(folder, s.recursive):
                if f.path not in seen:
                    seen.add(f.path)
                    out.append(f)

        a = normalize_path(s.zone_a or "")
        b = normalize_path(s.zone_b or "")

        # The workspace is always scanned; a missing folder means the root
        scan_folder(a if a and self.vault.folder_exists(a) else "")

        if a:
            if b and self.vault.folder_exists(b):
                scan_folder(b)

            if s.extra_scan_enabled:
                folders = [normalize_path(f) for f in s.extra_scan_folders if f and f.strip()]
                if folders:
                    for folder in folders:
                        if folder and self.vault.folder_exists(folder):
                            scan_folder(folder)
                else:
                    # No folders listed: everything outside workspace and staging
                    for f in self.vault.list_files():
                        p = normalize_path(f.path)
                        if f.path in seen or is_within(p, a) or is_within(p, b):
                            continue
                        seen.add(f.path)
                        out.append(f)

        return out

    def list_notes_by_scope(self) -> List[str]:
        """Paths of the notes whose links are analyzed."""
        notes = [
            normalize_path(f.path)
            for f in self.vault.list_files()
            if self.kind_of(f.path) == FileKind.NOTE
        ]
        if self.settings.backlink_scope == "whole-vault":
            return notes
        return [p for p in notes if self.zone_of(p) == Zone.A]

    # ------------------------------------------------------------------
    # detection
    # ------------------------------------------------------------------

    def _new_entry(self, path: str) -> FileEntry:
        return FileEntry(
            path=path,
            display_name=basename(path) or path,
            zone=self.zone_of(path),
            kind=self.kind_of(path),
        )

    def detect_report(self, force: bool = False) -> DetectReport:
        """Build (or return the cached) detection report.

        Args:
            force: Rescan even when the snapshot is not dirty

        Returns:
            Immutable report of entries, preview moves and stats
        """
        with self._lock:
            if not force and not self._dirty and self._last_report is not None:
                return self._last_report

            self._dirty = False
            report = self._build_report()
            self._last_report = report
            return report

    def _build_report(self) -> DetectReport:
        s = self.settings
        self.vault.invalidate()
        self.metadata.invalidate()
        entries: Dict[str, FileEntry] = {}

        def ensure(path: str) -> FileEntry:
            p = normalize_path(path)
            entry = entries.get(p)
            if entry is None:
                entry = self._new_entry(p)
                entries[p] = entry
            return entry

        # Step 1: inventory
        for f in self.scan_inventory_files():
            ensure(f.path)

        # Step 2: backlinks
        resolver = BacklinkResolver(
            self.vault,
            self.metadata,
            links=s.link_sources.links,
            embeds=s.link_sources.embeds,
            frontmatter=s.link_sources.frontmatter,
        )
        resolution = resolver.resolve(self.list_notes_by_scope())

        for target_path, backlink in resolution.resolved:
            ensure(target_path).add_backlink(backlink)

        for key, backlinks in resolution.missing.items():
            path = f"{MISSING_PREFIX}{key}"
            entries[path] = FileEntry(
                path=path,
                display_name=key.rsplit("/", 1)[-1] or key,
                zone=Zone.OUT,
                kind=FileKind.UNKNOWN,
                referenced_by_notes=list(backlinks),
                action=UnknownAction(reason="missing"),
                tags=[EntryTag.MISSING],
            )

        # Step 3: planning
        ActionPlanner.from_settings(s).plan(entries.values())

        # Step 4: conflict simulation
        simulator = ConflictSimulator(
            self.vault,
            staging_root=s.zone_b,
            global_name_check=s.global_name_check,
            zone_of=self.zone_of,
        )
        preview = simulator.simulate(entries)

        report = DetectReport(
            entries=self._visible_entries(entries, preview),
            preview=preview,
            stats=self._compute_stats(entries),
        )
        logger.info(
            f"[Detect] {report.stats.total} entries, {report.stats.attachments} attachments, "
            f"{len(preview)} planned move(s), {report.stats.conflicts} conflict(s), "
            f"{report.stats.missing} missing"
        )
        return report

    @staticmethod
    def _visible_entries(entries: Dict[str, FileEntry], preview: List[FileEntry]) -> List[FileEntry]:
        """Entries worth reporting: all of A/B/C, missing, and relevant OUT files."""
        preview_targets = {normalize_path(p.path) for p in preview}
        visible = []
        for e in entries.values():
            if e.path.startswith(MISSING_PREFIX) or e.zone != Zone.OUT:
                visible.append(e)
            elif (
                e.referenced_by_notes
                or e.is_conflict
                or is_planned_move(e.action)
                or e.path in preview_targets
            ):
                visible.append(e)
        return visible

    @staticmethod
    def _compute_stats(entries: Dict[str, FileEntry]) -> ReportStats:
        notes = attachments = todo = missing = conflicts = 0
        for e in entries.values():
            if e.kind == FileKind.NOTE:
                notes += 1
            if e.kind.is_attachment:
                attachments += 1
            if e.is_missing:
                missing += 1
            if e.is_conflict:
                conflicts += 1
            if mark_of(e) in TODO_MARKS:
                todo += 1
        return ReportStats(
            notes=notes,
            attachments=attachments,
            todo=todo,
            missing=missing,
            conflicts=conflicts,
            total=len(entries),
        )

    # ------------------------------------------------------------------
    # apply / undo
    # ------------------------------------------------------------------

    def can_undo(self) -> bool:
        return self.undo.can_undo()

    def get_last_undo(self) -> Optional[UndoEntry]:
        return self.undo.peek()

    @staticmethod
    def explain_no_moves(report: DetectReport) -> str:
        conflicts = sum(1 for e in report.entries if e.is_conflict)
        kept = sum(
            1
            for e in report.entries
            if e.kind.is_attachment and isinstance(e.action, Keep) and not e.is_missing
        )
        if conflicts:
            return (
                f"No planned moves. {conflicts} file(s) have conflicts (C) that block moving; "
                "check the global name check setting or resolve duplicate file names."
            )
        if kept:
            return f"All {kept} attachment(s) are already in correct locations."
        return "No planned moves to apply."

    def apply_plan(self, confirm: Optional[ConfirmCallback] = None) -> ApplySummary:
        """Execute the conflict-free moves of a fresh detection pass.

        Args:
            confirm: Optional confirmation callback; declining leaves the
                vault untouched

        Returns:
            ApplySummary with per-batch counts and error strings
        """
        with self._lock, correlation_scope("apply"):
            report = self.detect_report(force=True)

            moves = [
                Move(source=normalize_path(p.virtual_from), target=normalize_path(p.path))
                for p in report.preview
                if p.is_preview and p.virtual_from
            ]

            if not moves:
                message = self.explain_no_moves(report)
                logger.info(f"[Apply] {message}")
                return ApplySummary(message=message)

            if confirm is not None:
                prompt = f"This will move {len(moves)} file(s).\n{_describe_moves(moves)}"
                if not confirm("Apply organizer plan", prompt, moves):
                    logger.info("[Apply] Cancelled by user")
                    return ApplySummary(message="Apply cancelled.", cancelled=True)

            logger.info(f"[Apply] Moving {len(moves)} file(s)")
            batch = self.executor.execute(moves)

            if batch.succeeded:
                self.undo.push(UndoEntry(timestamp=time.time(), moves=list(batch.succeeded)))

            moved = len(batch.succeeded)
            if batch.failed:
                message = f"Applied: {moved} moved, {batch.failed} failed.\n" + "\n".join(batch.errors[:3])
                logger.warning(f"[Apply] {moved} moved, {batch.failed} failed")
            else:
                message = f"Applied: {moved} file(s) moved successfully."
                if self.can_undo():
                    message += " (Undo available)"
                logger.info(f"[Apply] {moved} file(s) moved")

            self.mark_dirty_and_schedule_refresh()
            return ApplySummary(
                moved=moved,
                failed=batch.failed,
                errors=list(batch.errors),
                moves=list(batch.succeeded),
                message=message,
            )

    def undo_last_operation(self, confirm: Optional[ConfirmCallback] = None) -> UndoSummary:
        """Revert the most recently applied batch.

        Args:
            confirm: Optional confirmation callback; declining puts the
                batch back on the history unchanged

        Returns:
            UndoSummary with restored/failed counts
        """
        with self._lock, correlation_scope("undo"):
            entry = self.undo.pop()
            if entry is None:
                return UndoSummary(message="Nothing to undo.")

            reverse_moves = [m.reversed() for m in reversed(entry.moves)]

            if confirm is not None:
                when = time.strftime("%H:%M:%S", time.localtime(entry.timestamp))
                prompt = (
                    f"This will revert {len(entry.moves)} file move(s) from {when}.\n"
                    f"{_describe_moves(reverse_moves)}"
                )
                if not confirm("Undo last operation", prompt, reverse_moves):
                    self.undo.push(entry)
                    logger.info("[Undo] Cancelled by user")
                    return UndoSummary(message="Undo cancelled.", cancelled=True)

            batch = self.executor.execute(reverse_moves)
            restored = len(batch.succeeded)
            message = f"Undo: {restored} restored, {batch.failed} failed."
            if batch.failed:
                logger.warning(f"[Undo] {message}")
            else:
                logger.info(f"[Undo] {message}")

            self.mark_dirty_and_schedule_refresh()
            return UndoSummary(
                restored=restored,
                failed=batch.failed,
                errors=list(batch.errors),
                message=message,
            )
