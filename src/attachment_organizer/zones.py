"""Zone classification.

Zones are checked in a fixed priority order so nested roots stay
deterministic: staging (B) wins over extra-scan folders (C), which win over
the workspace (A). Anything left over is OUT, unless the workspace root is
unconfigured, in which case the whole vault is the workspace.
"""

from typing import Callable, Iterable, List, Tuple

from .models import Zone
from .paths import is_within, normalize_path


def _zone_rules(
    zone_a: str, zone_b: str, extra_folders: Iterable[str]
) -> List[Tuple[Callable[[str], bool], Zone]]:
    a = normalize_path(zone_a or "")
    b = normalize_path(zone_b or "")
    extras = [normalize_path(folder or "") for folder in extra_folders]

    rules: List[Tuple[Callable[[str], bool], Zone]] = [
        (lambda p: is_within(p, b), Zone.B),
    ]
    for c in extras:
        rules.append((lambda p, c=c: is_within(p, c), Zone.C))
    # An empty workspace root means the vault root is the workspace
    rules.append((lambda p: not a or is_within(p, a), Zone.A))
    return rules


def classify_zone(
    path: str,
    zone_a: str,
    zone_b: str,
    extra_folders: Iterable[str] = (),
) -> Zone:
    """Map a vault path to its zone.

    Args:
        path: Vault path to classify
        zone_a: Workspace root ("" means the vault root)
        zone_b: Staging root ("" disables the staging zone)
        extra_folders: Extra-scan roots; pass an empty list when extra scan
            is disabled

    Returns:
        The first zone whose rule matches, else Zone.OUT
    """
    p = normalize_path(path)
    for matches, zone in _zone_rules(zone_a, zone_b, extra_folders):
        if matches(p):
            return zone
    return Zone.OUT
