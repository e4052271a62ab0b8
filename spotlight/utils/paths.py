# spotlight/utils/paths.py
from __future__ import annotations

import os
import re
from pathlib import Path

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def path_basename(path: str) -> str:
    """Last non-empty segment of ``path`` ('/a/b/' -> 'b', '/' -> '/')."""
    if not path:
        return ""
    stripped = path.rstrip("/" + os.sep)
    if not stripped:
        return path[:1]
    return os.path.basename(stripped)


def display_dir(path: str, home: str | None = None) -> str:
    """
    Parent directory of ``path`` for display, with the home prefix
    collapsed to '~':
      '/home/ann/Docs/a.txt' -> '~/Docs', '/etc/hosts' -> '/etc'
    """
    parent = os.path.dirname(path.rstrip("/" + os.sep)) or path[:1]
    home = str(Path.home()) if home is None else home.rstrip("/" + os.sep)
    if home and (parent == home or parent.startswith(home + os.sep)):
        return "~" + parent[len(home):]
    return parent


def is_hidden_path(path: str) -> bool:
    """True when any component of ``path`` starts with a dot."""
    return any(part.startswith(".") and part not in (".", "..")
               for part in re.split(r"[\\/]", path) if part)


def escape_glob(text: str) -> str:
    """Escape shell-glob metacharacters so find(1) matches them literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


def is_utf8_clean(path: str) -> bool:
    """False for names decoded with surrogate escapes (not valid UTF-8 on disk)."""
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
