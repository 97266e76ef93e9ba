from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
_HEX_DIFFICULTY = re.compile(r"0[xX][0-9a-fA-F]+")
_DEC_DIFFICULTY = re.compile(r"[0-9]+")


class CheckpointError(Exception):
    pass


class MalformedDigest(CheckpointError):
    pass


class MalformedDifficulty(CheckpointError):
    pass


class HeightConflict(CheckpointError):
    pass


def parse_hash_hex(text: str, hash_bytes: int = 32) -> bytes:
    if not isinstance(text, str):
        raise MalformedDigest(f"Checkpoint hash must be a hex string, got {type(text).__name__}")
    if len(text) != hash_bytes * 2:
        raise MalformedDigest(f"Checkpoint hash must be {hash_bytes * 2} hex characters: {text!r}")
    if not _HEX_DIGITS.fullmatch(text):
        raise MalformedDigest(f"Checkpoint hash is not valid hex: {text!r}")
    return bytes.fromhex(text)


def parse_difficulty(text: str) -> int:
    """Parse a cumulative difficulty given as decimal or 0x-prefixed hex."""
    value = str(text).strip()
    if _HEX_DIFFICULTY.fullmatch(value):
        return int(value[2:], 16)
    if _DEC_DIFFICULTY.fullmatch(value):
        return int(value, 10)
    raise MalformedDifficulty(f"Failed to parse difficulty checkpoint: {text!r}")


def coerce_digest(value: bytes | str, hash_bytes: int = 32) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        digest = bytes(value)
        if len(digest) != hash_bytes:
            raise MalformedDigest(f"Block hash must be {hash_bytes} bytes, got {len(digest)}")
        return digest
    return parse_hash_hex(value, hash_bytes)


@dataclass(frozen=True)
class CheckpointEntry:
    height: int
    hash_hex: str
    difficulty: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"height": self.height, "hash": self.hash_hex}
        if self.difficulty:
            data["difficulty"] = self.difficulty
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CheckpointEntry":
        return cls(
            height=int(data["height"]),
            hash_hex=data["hash"],
            difficulty=data.get("difficulty", ""),
        )
