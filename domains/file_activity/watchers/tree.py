"""
Directory tree enumeration and watch registration.
"""

import os
import stat
from typing import Iterator

from loguru import logger


def iter_directories(root: str) -> Iterator[str]:
    """
    Yield ``root`` and every directory beneath it, depth first.

    Each path is yielded before it is stat'ed, so ``root`` is yielded even if
    it turns out not to be a directory. Stat and listing failures are logged
    and stop the descent of that branch only. Symlinked directories are not
    followed.

    Args:
        root: Top of the tree

    Yields:
        Directory paths joined onto ``root``
    """
    root = os.fsdecode(root)
    yield root

    try:
        st = os.stat(root)
    except OSError as e:
        logger.warning(f"Error getting file info: {e}")
        return

    if not stat.S_ISDIR(st.st_mode):
        return

    try:
        with os.scandir(root) as it:
            children = [entry.path for entry in it if _is_real_dir(entry)]
    except OSError as e:
        logger.warning(f"Error reading directory {root}: {e}")
        return

    for child in sorted(children):
        yield from iter_directories(child)


def _is_real_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def watch_tree(watcher, root: str) -> int:
    """
    Register one watch per directory in the tree under ``root``.

    A failed registration is logged and the walk carries on, so one bad
    subtree never costs its siblings their watches.

    Args:
        watcher: Object with an ``add(path)`` method (DirectoryWatcher)
        root: Top of the tree

    Returns:
        Number of watches installed
    """
    installed = 0
    for path in iter_directories(root):
        try:
            watcher.add(path)
        except OSError as e:
            logger.warning(f"Error adding watcher to directory {path}: {e}")
            continue
        installed += 1

    logger.info(f"Installed {installed} watches under {root}")
    return installed
