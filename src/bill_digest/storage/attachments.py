from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def persist(data: bytes, directory: Path | str, file_name: str) -> Path:
    """Create directory if needed and write data to directory/file_name."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / file_name
    path.write_bytes(data)
    return path


def cleanup(directory: Path | str) -> int:
    """
    Remove every file in directory and return how many were removed.
    Never raises: a missing directory or an undeletable file only gets logged.
    """
    target_dir = Path(directory)
    if not target_dir.is_dir():
        return 0

    removed = 0
    for path in target_dir.iterdir():
        if not path.is_file():
            continue
        try:
            path.unlink()
            removed += 1
        except OSError as exc:
            logger.warning("[cleanup] could not remove %s: %s", path, exc)
    return removed
