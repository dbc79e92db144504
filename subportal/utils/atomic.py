"""Crash-safe replacement of the store file.

The new content goes to a temporary file next to the target, is flushed to
disk, then renamed over the target. Readers see the old file or the new one,
never a partial write.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from subportal.utils.logging import get_logger

logger = get_logger("utils.atomic")


class AtomicWriteError(Exception):
    """The target file could not be replaced."""


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    Replace path with text.

    Raises:
        AtomicWriteError: If any step fails; the previous file is left as is
    """
    path = Path(path)
    temp_path: Optional[Path] = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, raw_temp = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        temp_path = Path(raw_temp)

        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, path)
    except (OSError, UnicodeError) as e:
        if temp_path is not None:
            with contextlib.suppress(OSError):
                temp_path.unlink()
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        raise AtomicWriteError(f"Could not replace {path}: {e}") from e

    logger.debug("atomic_write_success", path=str(path), chars=len(text))


def atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """
    Serialize data and replace path with it.

    Raises:
        AtomicWriteError: If data is not JSON serializable or the write fails
    """
    try:
        text = json.dumps(data, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise AtomicWriteError(f"Could not serialize data for {path}: {e}") from e

    atomic_write_text(path, text + "\n")
