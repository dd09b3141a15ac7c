"""Backlink resolution.

Reads the links of every note in scope, cleans them, and resolves each one to
a vault file. Resolved links become backlinks of their target; unresolved ones
are grouped by key so the engine can surface them as missing entries.

Resolution order for one link:
1. an explicit path that exists in the vault
2. the host's best-match resolution of the cleaned text
3. for explicit links, the host's resolution of the explicit path's basename
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .links import explicit_to_vault_path, is_explicit, is_external, parse_link
from .models import Backlink
from .paths import basename, normalize_path
from .ports import MetadataProvider, VaultFile, VaultProvider

logger = logging.getLogger(__name__)


@dataclass
class BacklinkResolution:
    """Result of resolving every link of a set of notes.

    Attributes:
        resolved: (target path, backlink) pairs in discovery order
        missing: unresolved backlinks grouped by key (explicit path if the
            link had one, else the cleaned text), in discovery order
        discarded: count of empty or external links that were skipped
    """

    resolved: List[Tuple[str, Backlink]] = field(default_factory=list)
    missing: Dict[str, List[Backlink]] = field(default_factory=dict)
    discarded: int = 0


class BacklinkResolver:
    """Resolves note links against a vault."""

    def __init__(
        self,
        vault: VaultProvider,
        metadata: MetadataProvider,
        links: bool = True,
        embeds: bool = True,
        frontmatter: bool = True,
    ):
        """
        Initialize the resolver.

        Args:
            vault: Vault provider used for direct path lookups
            metadata: Metadata provider for link extraction and resolution
            links: Read inline links
            embeds: Read embeds
            frontmatter: Read frontmatter links
        """
        self.vault = vault
        self.metadata = metadata
        self.use_links = links
        self.use_embeds = embeds
        self.use_frontmatter = frontmatter

    def raw_links_of(self, note_path: str) -> Optional[List[str]]:
        """Raw link strings of a note from the enabled sources."""
        cached = self.metadata.get_links(note_path)
        if cached is None:
            return None

        raw: List[str] = []
        if self.use_links:
            raw.extend(cached.links)
        if self.use_embeds:
            raw.extend(cached.embeds)
        if self.use_frontmatter:
            raw.extend(cached.frontmatter_links)
        return raw

    def _resolve_by_host(self, key: str, from_note: str) -> Optional[VaultFile]:
        dest = self.metadata.resolve_link(key, from_note)
        if dest is not None:
            return dest

        if key.startswith("/"):
            no_slash = key[1:]
            dest = self.metadata.resolve_link(no_slash, from_note)
            if dest is not None:
                return dest
            return self.vault.get_file_at(normalize_path(no_slash))

        return None

    def resolve_link(
        self, raw: str, from_note: str
    ) -> Tuple[Optional[Backlink], Optional[VaultFile]]:
        """Parse and resolve one raw link.

        Returns:
            (backlink, destination). The backlink is None when the link is
            empty or external; the destination is None when unresolved.
        """
        cleaned = parse_link(raw)
        if not cleaned or is_external(cleaned):
            return None, None

        explicit = explicit_to_vault_path(cleaned, from_note) if is_explicit(cleaned) else None

        dest: Optional[VaultFile] = None
        if explicit:
            dest = self.vault.get_file_at(explicit)

        if dest is None:
            dest = self._resolve_by_host(cleaned, from_note)
            if dest is None and explicit:
                dest = self._resolve_by_host(basename(explicit), from_note)

        backlink = Backlink(from_note=from_note, raw=raw, cleaned=cleaned, explicit_path=explicit)
        return backlink, dest

    def resolve(self, notes: Iterable[str]) -> BacklinkResolution:
        """Resolve the links of every given note."""
        result = BacklinkResolution()

        for note_path in notes:
            raw_links = self.raw_links_of(note_path)
            if raw_links is None:
                continue

            for raw in raw_links:
                backlink, dest = self.resolve_link(raw, note_path)
                if backlink is None:
                    result.discarded += 1
                    continue

                if dest is not None:
                    result.resolved.append((normalize_path(dest.path), backlink))
                    continue

                key = backlink.explicit_path or backlink.cleaned
                result.missing.setdefault(key, []).append(backlink)
                logger.debug(f"[Detect] Unresolved link {raw!r} in {note_path}")

        return result
