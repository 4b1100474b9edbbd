from __future__ import annotations

import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Iterable

logger = logging.getLogger(__name__)


def write_document(path: Path, content: str) -> bool:
    """Write a generated document atomically.

    Returns False (and leaves the file alone) when it already holds `content`.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.is_file() and path.read_text(encoding="utf-8") == content:
        logger.debug("unchanged: %s", path)
        return False

    with NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="\n",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp:
        tmp.write(content)
        temp_path = Path(tmp.name)
    try:
        temp_path.replace(path)
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info("wrote %s", path)
    return True


def remove_documents(paths: Iterable[Path]) -> list[Path]:
    """Delete previously generated documents; returns the ones removed."""
    removed: list[Path] = []
    for path in paths:
        if path.is_file():
            path.unlink()
            removed.append(path)
            logger.info("removed stale %s", path)
    return removed
