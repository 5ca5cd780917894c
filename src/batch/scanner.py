# src/batch/scanner.py — v2
"""Item scanner: discover ``<index>.png`` / ``<index>.json`` pairs.

Item indices come from the file names and must be dense (0..N-1). Indices
already present in the cache are kept even if their files are no longer
passed in, so a resumed run still covers every cached item.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from assetledger.pipeline.models import UploadItem

logger = logging.getLogger(__name__)

EXTENSION_PNG = ".png"
EXTENSION_JSON = ".json"


class ItemScanner:
    """Turn file lists and cached indices into ordered ``UploadItem``s."""

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory

    def list_files(self, directory: Path) -> list[Path]:
        """List candidate files in ``directory`` (non-recursive).

        Raises:
            ValueError: If ``directory`` is not a directory.
        """
        if not directory.is_dir():
            raise ValueError(f"Not a directory: {directory}")
        return sorted(p for p in directory.iterdir() if p.is_file())

    def scan(
        self,
        files: Iterable[Path | str],
        cached_indices: Iterable[int] = (),
    ) -> list[UploadItem]:
        """Build upload items from ``files`` plus ``cached_indices``.

        Returns:
            Items sorted by index.

        Raises:
            ValueError: If the resulting indices are not contiguous from 0.
        """
        images: dict[int, Path] = {}
        for f in files:
            path = Path(f)
            if path.suffix.lower() != EXTENSION_PNG:
                continue
            index = _parse_index(path)
            if index is None:
                logger.warning("Skipping %s: file name is not an item index", path.name)
                continue
            images.setdefault(index, path)

        base = self._directory or _common_parent(images.values())
        for index in cached_indices:
            if index not in images:
                images[index] = base / f"{index}{EXTENSION_PNG}"

        missing = sorted(set(range(len(images))) - set(images))
        if missing:
            raise ValueError(f"Item indices are not contiguous, missing {missing[:10]}")

        items = [
            UploadItem(
                index=index,
                content_file=path,
                manifest_file=path.with_suffix(EXTENSION_JSON),
            )
            for index, path in sorted(images.items())
        ]
        logger.info("Found %d items", len(items))
        return items


def _parse_index(path: Path) -> int | None:
    stem = path.stem
    if not stem.isdigit():
        return None
    return int(stem)


def _common_parent(paths: Iterable[Path]) -> Path:
    for path in paths:
        return path.parent
    return Path(".")
