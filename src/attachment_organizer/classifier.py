"""Attachment detection rules.

Markdown files are notes unless one of the attachment rules matches them
(drawings and canvases are stored as markdown but behave like attachments).
Every non-markdown file is an attachment.
"""

import logging
import re
from typing import Iterable, List, Pattern, Sequence

from .models import FileKind
from .paths import normalize_path

logger = logging.getLogger(__name__)

# Built-in rules are always active, whatever the user configures
DEFAULT_ATTACHMENT_RULES = (
    r"\.excalidraw\.md$",
    r"\.canvas\.md$",
)

DEFAULT_ATTACHMENT_RULES_TEXT = "\n".join(DEFAULT_ATTACHMENT_RULES)


def split_rule_lines(rules_text: str) -> List[str]:
    """Split a one-pattern-per-line rules block into non-blank patterns."""
    return [line.strip() for line in (rules_text or "").splitlines() if line.strip()]


def compile_attachment_rules(user_rules: Iterable[str] = ()) -> List[Pattern[str]]:
    """Compile user patterns merged with the built-in defaults.

    Defaults come first and duplicates are dropped. Invalid user patterns are
    skipped with a warning; they never prevent the remaining rules from
    compiling.

    Args:
        user_rules: Regular expressions supplied by the user

    Returns:
        Case-insensitive compiled patterns
    """
    merged: List[str] = []
    for rule in list(DEFAULT_ATTACHMENT_RULES) + [r.strip() for r in user_rules]:
        if rule and rule not in merged:
            merged.append(rule)

    compiled: List[Pattern[str]] = []
    for rule in merged:
        try:
            compiled.append(re.compile(rule, re.IGNORECASE))
        except re.error as e:
            logger.warning(f"[Rules] Invalid attachment rule regex {rule!r}: {e}")

    logger.debug(f"[Rules] Compiled {len(compiled)} attachment rule(s)")
    return compiled


def is_markdown(path: str) -> bool:
    return path.lower().endswith(".md")


def is_attachment_note(path: str, rules: Sequence[Pattern[str]]) -> bool:
    p = normalize_path(path)
    if not is_markdown(p):
        return False
    return any(rule.search(p) for rule in rules)


def kind_of(path: str, rules: Sequence[Pattern[str]]) -> FileKind:
    """Classify a path as a note, an attachment note or an attachment file."""
    if not is_markdown(path):
        return FileKind.ATTACHMENT_FILE
    if is_attachment_note(path, rules):
        return FileKind.ATTACHMENT_NOTE
    return FileKind.NOTE
