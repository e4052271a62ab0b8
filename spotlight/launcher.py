from __future__ import annotations

"""
Open a selected path with the desktop's default handler.

The primary route asks the platform opener (``gio open``, ``open``,
``os.startfile``) and waits for it to hand off; if that fails the path is
given to ``xdg-open`` without waiting.  ``launch_path`` only reports
success or failure, it never raises.
"""

import os
import subprocess
import sys
from pathlib import Path
from typing import List

from loguru import logger

from .config import FALLBACK_OPENER, LAUNCH_TIMEOUT_SECONDS
from .errors import LaunchFailure


def path_to_uri(path: str) -> str:
    """``file://`` URI for ``path`` (relative paths resolved against cwd)."""
    return Path(path).absolute().as_uri()


def _opener_argv(uri: str) -> List[str]:
    if sys.platform == "darwin":
        return ["open", uri]
    return ["gio", "open", uri]


def open_default(path: str) -> None:
    """Open through the platform handler; raises LaunchFailure."""
    uri = path_to_uri(path)
    if sys.platform == "win32":
        try:
            os.startfile(path)  # type: ignore[attr-defined]
        except OSError as e:
            raise LaunchFailure(f"startfile failed for {path}: {e}") from e
        return

    argv = _opener_argv(uri)
    try:
        subprocess.run(
            argv,
            check=True,
            timeout=LAUNCH_TIMEOUT_SECONDS,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise LaunchFailure(f"{argv[0]} could not open {uri}: {e}") from e


def open_fallback(path: str) -> None:
    """Spawn ``xdg-open PATH`` and return without waiting; raises LaunchFailure."""
    try:
        subprocess.Popen(
            [FALLBACK_OPENER, path],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise LaunchFailure(f"{FALLBACK_OPENER} could not be started: {e}") from e


def launch_path(path: str) -> bool:
    if not path:
        logger.error("Refusing to launch an empty path")
        return False
    try:
        open_default(path)
        logger.info("Opened {}", path)
        return True
    except LaunchFailure as e:
        logger.warning("Default open failed, falling back to {}: {}", FALLBACK_OPENER, e)

    try:
        open_fallback(path)
        logger.info("Handed {} to {}", path, FALLBACK_OPENER)
        return True
    except LaunchFailure as e:
        logger.error("Failed to open {}: {}", path, e)
        return False
