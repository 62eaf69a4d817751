"""
Atomic file writes: nothing half-written is ever visible at a target path.

Write to a temp file in the same directory, then rename over the target.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write(path: Path, content: str, mode: int = 0o644) -> Path:
    """Write *content* to *path* atomically, creating parent directories.

    Raises:
        OSError: if the file cannot be written or renamed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        tmp.chmod(mode)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %s", path)
    return path
