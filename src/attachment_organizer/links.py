"""Link text parsing.

Turns the raw target of a note link (`folder/img.png|alias`,
`Note#Heading^block`, `file%20name.pdf?x=1`) into the file part the
organizer cares about, and into an explicit vault path when the link names a
folder.
"""

from typing import Optional
from urllib.parse import unquote

from .paths import dirname, normalize_path

EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "file://")

# Cut points, applied in this order after the alias split
LINK_SUFFIX_MARKERS = ("#", "^", "?")


def _cut_at(text: str, marker: str) -> str:
    i = text.find(marker)
    return text if i == -1 else text[:i]


def parse_link(raw: Optional[str]) -> Optional[str]:
    """Extract the cleaned file part of a raw link.

    Strips the alias (`|`), heading (`#`), block reference (`^`) and query
    (`?`), converts backslashes to forward slashes and percent-decodes once
    when a `%` is present.

    Args:
        raw: Raw link text as written in the note

    Returns:
        The cleaned file part, or None when nothing usable remains
    """
    s = (raw or "").strip()
    if not s:
        return None

    s = _cut_at(s, "|")
    for marker in LINK_SUFFIX_MARKERS:
        s = _cut_at(s, marker)

    s = s.strip().replace("\\", "/")
    if "%" in s:
        s = unquote(s)
    s = s.strip()

    return s or None


def is_external(text: str) -> bool:
    """True for web, mail and file URLs."""
    s = text.strip().lower()
    return s.startswith(EXTERNAL_PREFIXES)


def is_explicit(cleaned: str) -> bool:
    """A cleaned link that names a folder is an explicit path."""
    return "/" in cleaned


def explicit_to_vault_path(cleaned: str, from_note_path: str) -> str:
    """Turn an explicit link into a vault path.

    A leading slash is dropped. `./` and `../` links are prefixed with the
    referencing note's folder without collapsing the dot segments; everything
    else is taken as relative to the vault root.
    """
    s = cleaned.strip().replace("\\", "/")
    if s.startswith("/"):
        s = s[1:]

    if s.startswith("./") or s.startswith("../"):
        base = dirname(from_note_path)
        return normalize_path(f"{base}/{s}" if base else s)

    return normalize_path(s)
