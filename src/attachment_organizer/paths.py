"""Vault path helpers.

All paths inside the organizer are vault-relative POSIX strings without a
leading or trailing slash; the vault root is the empty string. Folder and
filename keys used for collision detection fold case and Unicode
compatibility forms so that `Img.PNG` and `img.png` (or a decomposed accent
and its composed form) compare equal.
"""

import posixpath
import re
import unicodedata
from typing import List, Sequence

SEPARATOR_PATTERN = re.compile(r"[\\/]+")

# Non-breaking spaces that editors paste into file names
NBSP_CHARS = ("\u00a0", "\u202f")


def normalize_path(path: str) -> str:
    """Normalize a vault path.

    Converts backslashes to forward slashes, collapses repeated separators,
    strips leading and trailing slashes, replaces non-breaking spaces with
    regular spaces and applies NFC normalization. Dot segments (`.`, `..`)
    are left untouched.

    Args:
        path: Raw path string.

    Returns:
        Normalized vault-relative path ("" for the vault root).
    """
    if not path:
        return ""

    normalized = SEPARATOR_PATTERN.sub("/", path)
    for ch in NBSP_CHARS:
        normalized = normalized.replace(ch, " ")
    normalized = normalized.strip("/")
    return unicodedata.normalize("NFC", normalized)


def collapse_dots(path: str) -> str:
    """Normalize a vault path and resolve its `.` and `..` segments.

    Used for comparison keys only; stored link targets keep their spelling.
    A path that climbs above the vault root keeps its leading `..`.
    """
    p = normalize_path(path)
    if not p:
        return ""
    collapsed = posixpath.normpath(p)
    return "" if collapsed == "." else collapsed


def dirname(path: str) -> str:
    """Parent folder of a vault path ("" for root-level files)."""
    p = normalize_path(path)
    i = p.rfind("/")
    return "" if i == -1 else p[:i]


def basename(path: str) -> str:
    """Last segment of a vault path."""
    p = normalize_path(path)
    return p.rsplit("/", 1)[-1]


def join(folder: str, name: str) -> str:
    """Join a folder and a file name, treating "" as the vault root."""
    folder = normalize_path(folder)
    return normalize_path(f"{folder}/{name}" if folder else name)


def is_within(path: str, root: str) -> bool:
    """True when `path` equals `root` or lives underneath it.

    An empty root never contains anything; callers decide what an
    unconfigured root means.
    """
    if not root:
        return False
    return path == root or path.startswith(root + "/")


def folder_key(path: str) -> str:
    """Case-folded parent folder, used for same-folder collision checks."""
    return dirname(path).lower()


def name_key(path: str) -> str:
    """Case- and Unicode-folded file name, used for name collision checks."""
    name = path.rsplit("/", 1)[-1].lower()
    return unicodedata.normalize("NFKC", name)


def lca_folder(folders: Sequence[str]) -> str:
    """Lowest common ancestor folder of a set of folders.

    The result is the longest shared prefix of path segments. An empty input,
    or folders with nothing in common, yields the vault root ("").

    Example:
        >>> lca_folder(["a/b/c", "a/b/d"])
        'a/b'
    """
    if not folders:
        return ""

    parts: List[List[str]] = [
        [seg for seg in normalize_path(f).split("/") if seg] for f in folders
    ]
    prefix = parts[0]
    for current in parts[1:]:
        j = 0
        while j < len(prefix) and j < len(current) and prefix[j] == current[j]:
            j += 1
        prefix = prefix[:j]
        if not prefix:
            break

    return "/".join(prefix)
