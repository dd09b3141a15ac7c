"""Local-directory providers.

`LocalVault` exposes a directory on disk as a vault of vault-relative POSIX
paths, and `MarkdownMetadata` reads link information straight out of the
markdown files in it. Together they let the organizer run without a host
editor; an editor integration would supply its own providers instead.

Hidden files and folders (any path segment starting with a dot) are not part
of the vault. That keeps the organizer's own state folder and editor
configuration folders out of every scan.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import frontmatter
import yaml

from .exceptions import VaultOperationError
from .paths import dirname, name_key, normalize_path
from .ports import MetadataProvider, NoteLinks, VaultFile, VaultProvider

logger = logging.getLogger(__name__)

WIKILINK_PATTERN = re.compile(r"(?P<embed>!?)\[\[(?P<target>[^\[\]\n]+?)\]\]")
MARKDOWN_LINK_PATTERN = re.compile(
    r"(?P<embed>!?)\[(?P<label>[^\[\]\n]*)\]\((?P<target>[^()\n]+)\)"
)
FENCED_CODE_PATTERN = re.compile(
    r"^(?P<fence>`{3,}|~{3,})[^\n]*\n.*?^(?P=fence)[^\n]*$",
    re.MULTILINE | re.DOTALL,
)
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")
LINK_TITLE_PATTERN = re.compile(r"""\s+(?:"[^"]*"|'[^']*')\s*$""")


def _is_hidden(rel_path: str) -> bool:
    return any(part.startswith(".") for part in rel_path.split("/") if part)


class LocalVault(VaultProvider):
    """Vault provider backed by a local directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise VaultOperationError(f"Vault root is not a directory: {self.root}")

    def _relative(self, path: str) -> str:
        """Collapse a vault path, refusing anything that leaves the vault."""
        rel = normalize_path(path)
        if not rel:
            return ""
        collapsed = posixpath.normpath(rel)
        if collapsed == ".":
            return ""
        if collapsed == ".." or collapsed.startswith("../"):
            raise VaultOperationError(f"Path escapes the vault: {path}", path=path)
        return collapsed

    def _absolute(self, path: str) -> Path:
        rel = self._relative(path)
        return self.root / rel if rel else self.root

    def _to_vault_path(self, absolute: Path) -> str:
        return normalize_path(absolute.relative_to(self.root).as_posix())

    def list_files(self) -> List[VaultFile]:
        return self.list_folder("", recursive=True)

    def list_folder(self, path: str, recursive: bool) -> List[VaultFile]:
        try:
            rel = self._relative(path)
        except VaultOperationError:
            return []
        base = self.root / rel if rel else self.root
        if not base.is_dir() or _is_hidden(rel):
            return []

        files: List[VaultFile] = []
        if not recursive:
            for child in sorted(base.iterdir()):
                if child.is_file() and not child.name.startswith("."):
                    files.append(VaultFile(self._to_vault_path(child)))
            return files

        for current, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                files.append(VaultFile(self._to_vault_path(Path(current) / name)))
        return files

    def folder_exists(self, path: str) -> bool:
        try:
            return self._absolute(path).is_dir()
        except VaultOperationError:
            return False

    def get_file_at(self, path: str) -> Optional[VaultFile]:
        try:
            rel = self._relative(path)
        except VaultOperationError:
            return None
        if not rel or _is_hidden(rel):
            return None
        if not (self.root / rel).is_file():
            return None
        return VaultFile(rel)

    def create_folder(self, path: str) -> None:
        target = self._absolute(path)
        if target.exists() and not target.is_dir():
            raise VaultOperationError(f"Cannot create folder, a file exists at {path}", path=path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VaultOperationError(f"Cannot create folder {path}: {e}", path=path) from e

    def rename_file(self, path: str, new_path: str) -> None:
        source = self._absolute(path)
        destination = self._absolute(new_path)

        if not source.is_file():
            raise VaultOperationError(f"Source file does not exist: {path}", path=path)
        # A case-only rename on a case-insensitive disk sees itself as the destination
        if destination.exists() and not os.path.samefile(source, destination):
            raise VaultOperationError(f"Destination already exists: {new_path}", path=new_path)
        if not destination.parent.is_dir():
            raise VaultOperationError(f"Destination folder does not exist: {dirname(new_path)}", path=new_path)

        try:
            os.rename(source, destination)
        except OSError as e:
            raise VaultOperationError(f"Cannot move {path} to {new_path}: {e}", path=path) from e


def _split_frontmatter(text: str, note_path: str) -> Tuple[Dict[str, Any], str]:
    """Return (metadata, body); unparseable frontmatter leaves the text whole."""
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        logger.debug(f"[Detect] Unreadable frontmatter in {note_path}: {e}")
        return {}, text
    return dict(post.metadata or {}), post.content


def _wikilinks_in_value(value: Any) -> List[str]:
    if isinstance(value, str):
        return [m.group("target") for m in WIKILINK_PATTERN.finditer(value)]
    if isinstance(value, dict):
        found: List[str] = []
        for item in value.values():
            found.extend(_wikilinks_in_value(item))
        return found
    if isinstance(value, (list, tuple)):
        found = []
        for item in value:
            found.extend(_wikilinks_in_value(item))
        return found
    return []


def _markdown_target(target: str) -> str:
    t = target.strip()
    if t.startswith("<") and ">" in t:
        return t[1:t.index(">")]
    return LINK_TITLE_PATTERN.sub("", t)


def extract_links(text: str, note_path: str = "") -> NoteLinks:
    """Pull links, embeds and frontmatter links out of a markdown document.

    Links inside fenced or inline code are ignored. Body links keep their
    order of appearance.
    """
    metadata, body = _split_frontmatter(text, note_path)

    body = FENCED_CODE_PATTERN.sub(lambda m: " " * len(m.group(0)), body)
    body = INLINE_CODE_PATTERN.sub(lambda m: " " * len(m.group(0)), body)

    found: List[Tuple[int, bool, str]] = []
    for m in WIKILINK_PATTERN.finditer(body):
        found.append((m.start(), bool(m.group("embed")), m.group("target")))
    for m in MARKDOWN_LINK_PATTERN.finditer(body):
        found.append((m.start(), bool(m.group("embed")), _markdown_target(m.group("target"))))
    found.sort(key=lambda item: item[0])

    links = NoteLinks()
    for _, embed, target in found:
        (links.embeds if embed else links.links).append(target)
    links.frontmatter_links = _wikilinks_in_value(metadata)
    return links


class MarkdownMetadata(MetadataProvider):
    """Metadata provider that parses the notes of a LocalVault."""

    def __init__(self, vault: LocalVault):
        self.vault = vault
        self._by_name: Optional[Dict[str, List[str]]] = None
        self._paths: Optional[List[str]] = None

    def invalidate(self) -> None:
        self._by_name = None
        self._paths = None

    def _build_index(self) -> None:
        self._paths = [f.path for f in self.vault.list_files()]
        self._by_name = {}
        for p in self._paths:
            self._by_name.setdefault(name_key(p), []).append(p)

    def get_links(self, note_path: str) -> Optional[NoteLinks]:
        found = self.vault.get_file_at(note_path)
        if found is None:
            return None
        try:
            text = (self.vault.root / found.path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"[Detect] Cannot read note {note_path}: {e}")
            return None
        return extract_links(text, note_path)

    def _exact(self, path: str) -> Optional[VaultFile]:
        return self.vault.get_file_at(path) or self.vault.get_file_at(f"{path}.md")

    @staticmethod
    def _best(candidates: List[str], from_note_path: str) -> Optional[VaultFile]:
        if not candidates:
            return None
        home = dirname(from_note_path)
        best = min(candidates, key=lambda p: (dirname(p) != home, len(p), p))
        return VaultFile(best)

    def resolve_link(self, key: str, from_note_path: str) -> Optional[VaultFile]:
        """Best-match resolution of a link key.

        Relative keys (`./`, `../`) resolve against the note's folder only.
        Otherwise the key is tried as an exact vault path (with and without
        `.md`), then as a path suffix, then as a bare file name. Ties prefer
        the note's own folder, then the shortest path.
        """
        raw = (key or "").strip().replace("\\", "/")
        if not raw:
            return None

        if raw.startswith("./") or raw.startswith("../"):
            base = dirname(from_note_path)
            return self._exact(f"{base}/{raw}" if base else raw)

        k = normalize_path(raw)
        if not k:
            return None

        exact = self._exact(k)
        if exact is not None:
            return exact

        if self._by_name is None or self._paths is None:
            self._build_index()

        if "/" in k:
            suffixes = ("/" + k.lower(), "/" + k.lower() + ".md")
            return self._best([p for p in self._paths if p.lower().endswith(suffixes)], from_note_path)

        candidates = self._by_name.get(name_key(k), []) + self._by_name.get(name_key(f"{k}.md"), [])
        return self._best(candidates, from_note_path)
