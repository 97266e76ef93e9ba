from __future__ import annotations

import logging
import threading
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterable

from .config import CONFIG, CheckpointConfig
from .models import (
    CheckpointEntry,
    CheckpointError,
    HeightConflict,
    MalformedDigest,
    coerce_digest,
    parse_difficulty,
    parse_hash_hex,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    # Published snapshots are never mutated; writers build a replacement.
    points: dict[int, bytes] = field(default_factory=dict)
    difficulty_points: dict[int, int] = field(default_factory=dict)
    heights: tuple[int, ...] = ()


class CheckpointStore:
    """Write-once map of block height to canonical block hash.

    Every height holds at most one hash and at most one cumulative difficulty.
    Re-adding an identical value is a no-op success; a different value for a
    pinned height is rejected and the stored value is kept.

    Readers never take a lock: each query reads one immutable snapshot.
    Writers serialize on ``_write_lock`` and publish a fresh snapshot with a
    single assignment, so a reader sees either all or none of a batch.
    """

    def __init__(self, config: CheckpointConfig = CONFIG):
        self.config = config
        self._write_lock = threading.RLock()
        self._snapshot = _Snapshot()

    def __len__(self) -> int:
        return len(self._snapshot.heights)

    def __contains__(self, height: object) -> bool:
        return height in self._snapshot.points

    def is_empty(self) -> bool:
        return not self._snapshot.heights

    @staticmethod
    def _require_height(height: object) -> int:
        if isinstance(height, bool) or not isinstance(height, int) or height < 0:
            raise CheckpointError(f"Checkpoint height must be a non-negative integer: {height!r}")
        return height

    def _stage_unlocked(
        self,
        points: dict[int, bytes],
        difficulty_points: dict[int, int],
        entry: CheckpointEntry,
    ) -> bool:
        height = self._require_height(entry.height)
        digest = parse_hash_hex(entry.hash_hex, self.config.hash_bytes)
        # Parse before writing anything so a bad difficulty leaves the hash unpinned too.
        difficulty = parse_difficulty(entry.difficulty) if entry.difficulty else None

        existing = points.get(height)
        if existing is not None and existing != digest:
            raise HeightConflict(
                f"Checkpoint at height {height} already exists, and hash for new checkpoint was different"
            )
        if difficulty is not None:
            existing_difficulty = difficulty_points.get(height)
            if existing_difficulty is not None and existing_difficulty != difficulty:
                raise HeightConflict(
                    f"Difficulty checkpoint at height {height} already exists, "
                    "and difficulty for new checkpoint was different"
                )

        changed = existing is None
        points[height] = digest
        if difficulty is not None:
            changed = changed or height not in difficulty_points
            difficulty_points[height] = difficulty
        return changed

    def add_checkpoints(self, entries: Iterable[CheckpointEntry]) -> list[bool]:
        results: list[bool] = []
        with self._write_lock:
            current = self._snapshot
            points = dict(current.points)
            difficulty_points = dict(current.difficulty_points)
            changed = False
            for entry in entries:
                try:
                    changed = self._stage_unlocked(points, difficulty_points, entry) or changed
                except CheckpointError as exc:
                    logger.warning("Rejected checkpoint at height %s: %s", entry.height, exc)
                    results.append(False)
                    continue
                results.append(True)
            if changed:
                self._snapshot = _Snapshot(
                    points=points,
                    difficulty_points=difficulty_points,
                    heights=tuple(sorted(points)),
                )
        return results

    def add_checkpoint(self, height: int, hash_hex: str, difficulty_str: str = "") -> bool:
        return self.add_checkpoints([CheckpointEntry(height, hash_hex, difficulty_str)])[0]

    def check_block(self, height: int, block_hash: bytes | str) -> tuple[bool, bool]:
        """Return ``(passed, is_checkpoint)`` for a block at ``height``."""
        expected = self._snapshot.points.get(height)
        if expected is None:
            return True, False

        try:
            digest = coerce_digest(block_hash, self.config.hash_bytes)
        except MalformedDigest as exc:
            logger.warning("CHECKPOINT FAILED FOR HEIGHT %d. Unreadable block hash: %s", height, exc)
            return False, True

        if digest == expected:
            logger.info("CHECKPOINT PASSED FOR HEIGHT %d %s", height, digest.hex())
            return True, True
        logger.warning(
            "CHECKPOINT FAILED FOR HEIGHT %d. EXPECTED HASH: %s, FETCHED HASH: %s",
            height,
            expected.hex(),
            digest.hex(),
        )
        return False, True

    def check_block_passes(self, height: int, block_hash: bytes | str) -> bool:
        passed, _ = self.check_block(height, block_hash)
        return passed

    def is_in_checkpoint_zone(self, height: int) -> bool:
        heights = self._snapshot.heights
        return bool(heights) and height <= heights[-1]

    def is_alternative_block_allowed(self, blockchain_height: int, block_height: int) -> bool:
        if block_height == 0:
            return False

        heights = self._snapshot.heights
        idx = bisect_right(heights, blockchain_height)
        # The whole chain under consideration sits below the first checkpoint.
        if idx == 0:
            return True
        return heights[idx - 1] < block_height

    def get_max_height(self) -> int:
        heights = self._snapshot.heights
        return heights[-1] if heights else 0

    def get_points(self) -> dict[int, bytes]:
        return dict(self._snapshot.points)

    def get_difficulty_points(self) -> dict[int, int]:
        return dict(self._snapshot.difficulty_points)

    def get_difficulty(self, height: int) -> int | None:
        return self._snapshot.difficulty_points.get(height)

    def entries(self) -> list[CheckpointEntry]:
        snapshot = self._snapshot
        rows: list[CheckpointEntry] = []
        for height in snapshot.heights:
            difficulty = snapshot.difficulty_points.get(height)
            rows.append(
                CheckpointEntry(
                    height=height,
                    hash_hex=snapshot.points[height].hex(),
                    difficulty=hex(difficulty) if difficulty is not None else "",
                )
            )
        return rows

    def check_for_conflicts(self, other: "CheckpointStore") -> bool:
        ours = self._snapshot.points
        for height, digest in sorted(other.get_points().items()):
            pinned = ours.get(height)
            if pinned is not None and pinned != digest:
                logger.warning(
                    "Checkpoint conflict at height %d: %s != %s",
                    height,
                    pinned.hex(),
                    digest.hex(),
                )
                return False
        return True
