"""
Centralized file filtering for the factorylint engine.

Decides whether a path should be analyzed, based on vendor/generated
directory exclusions and optional fnmatch patterns from the config.
"""

import fnmatch
import os
import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List


# These directories contain third-party code, build artifacts or runtime output.
EXCLUDED_DIRS: FrozenSet[str] = frozenset([
    # Dependencies
    "vendor",
    "node_modules",
    ".bundle",
    "bower_components",

    # Rails runtime output
    "tmp",
    "log",
    "public/assets",
    "public/packs",
    "coverage",

    # Version control
    ".git",
    ".svn",
    ".hg",

    # IDE / editor / cache
    ".idea",
    ".vscode",
    ".cache",
])

# Pattern: /dirname/ or /dirname at end of path (requires full directory name match)
_EXCLUDED_DIR_PATTERN = re.compile(
    r'(?:^|[/\\])(?:' + '|'.join(re.escape(d) for d in sorted(EXCLUDED_DIRS)) + r')(?:[/\\]|$)',
    re.IGNORECASE
)


@lru_cache(maxsize=2048)
def is_excluded_path(file_path: str) -> bool:
    """
    Check if a file path is in an excluded directory.

    Args:
        file_path: Absolute or relative path to check

    Returns:
        True if the file should be excluded, False otherwise
    """
    normalized = file_path.replace('\\', '/')
    return bool(_EXCLUDED_DIR_PATTERN.search(normalized))


def matches_any(file_path: str, patterns: Iterable[str]) -> bool:
    """Check a path against fnmatch patterns (e.g. ``spec/legacy/*``)."""
    normalized = file_path.replace('\\', '/')
    return any(fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(normalized, f"*/{pattern}")
               for pattern in patterns)


def filter_files(files: List[str], root: str, exclude: Iterable[str] = ()) -> List[str]:
    """Drop excluded files, keeping the input order.

    Exclusions are checked on paths relative to ``root`` so that the location
    of the scanned tree itself (e.g. under /tmp) never excludes it.
    """
    exclude = list(exclude)
    kept = []
    for file_path in files:
        relative = os.path.relpath(file_path, root)
        if is_excluded_path(relative) or matches_any(relative, exclude):
            continue
        kept.append(file_path)
    return kept
