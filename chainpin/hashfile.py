from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from .checkpoints import CheckpointStore
from .models import CheckpointEntry, CheckpointError


logger = logging.getLogger(__name__)


class StructuralParseError(CheckpointError):
    pass


def _parse_hashline(index: int, row: Any) -> CheckpointEntry:
    if not isinstance(row, dict):
        raise StructuralParseError(f"hashlines[{index}] must be an object")
    height = row.get("height")
    if isinstance(height, bool) or not isinstance(height, int) or height < 0:
        raise StructuralParseError(f"hashlines[{index}].height must be a non-negative integer")
    block_hash = row.get("hash")
    if not isinstance(block_hash, str):
        raise StructuralParseError(f"hashlines[{index}].hash must be a string")
    return CheckpointEntry(height=height, hash_hex=block_hash)


def read_hashfile(path: str | Path) -> list[CheckpointEntry]:
    source = Path(path)
    try:
        with source.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise StructuralParseError(f"Failed to read checkpoints file '{source}': {exc}") from exc

    if not isinstance(data, dict):
        raise StructuralParseError("Checkpoints file must contain a JSON object")
    rows = data.get("hashlines", [])
    if not isinstance(rows, list):
        raise StructuralParseError("Checkpoints file 'hashlines' must be a list")
    return [_parse_hashline(index, row) for index, row in enumerate(rows)]


def write_hashfile(path: str | Path, entries: Iterable[CheckpointEntry]) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "hashlines": [
            {"height": entry.height, "hash": entry.hash_hex}
            for entry in sorted(entries, key=lambda item: item.height)
        ]
    }
    with target.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    return target


def load_checkpoints_from_json(store: CheckpointStore, path: str | Path) -> bool:
    source = Path(path)
    if not source.exists():
        logger.debug("Blockchain checkpoints file not found: %s", source)
        return True

    logger.debug("Adding checkpoints from blockchain hashfile %s", source)
    prev_max_height = store.get_max_height()
    logger.debug("Max checkpoint height before file load is %d", prev_max_height)
    try:
        hashlines = read_hashfile(source)
    except StructuralParseError as exc:
        logger.error("Error loading checkpoints from %s: %s", source, exc)
        return False

    # Heights at or below the frontier seen at load start are never renegotiated.
    fresh: list[CheckpointEntry] = []
    for entry in hashlines:
        if entry.height <= prev_max_height:
            logger.debug("Ignoring checkpoint height %d", entry.height)
            continue
        logger.debug("Adding checkpoint height %d, hash=%s", entry.height, entry.hash_hex)
        fresh.append(entry)

    results = store.add_checkpoints(fresh)
    accepted = sum(1 for ok in results if ok)
    logger.info(
        "Checkpoints file %s: %d added, %d rejected, %d ignored",
        source,
        accepted,
        len(results) - accepted,
        len(hashlines) - len(fresh),
    )
    return True
