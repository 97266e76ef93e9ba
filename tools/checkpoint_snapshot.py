from __future__ import annotations

import argparse
import hashlib
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from chainpin.baseline import init_default_checkpoints
from chainpin.checkpoints import CheckpointStore
from chainpin.config import CONFIG, FAKECHAIN, NETWORK_TYPES


def _canonical_bytes(data: Any) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _network_snapshot(network: str) -> dict[str, Any]:
    store = CheckpointStore()
    count = init_default_checkpoints(store, network)
    rows = [entry.to_dict() for entry in store.entries()]
    return {
        "count": count,
        "max_height": store.get_max_height(),
        "checkpoints_hash": hashlib.sha256(_canonical_bytes(rows)).hexdigest(),
    }


def build_snapshot() -> dict[str, Any]:
    networks = {network: _network_snapshot(network) for network in NETWORK_TYPES if network != FAKECHAIN}
    now = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    payload = {
        "created_utc": now,
        "coin_name": CONFIG.coin_name,
        "networks": networks,
    }
    payload["baseline_hash"] = hashlib.sha256(_canonical_bytes(networks)).hexdigest()
    return payload


def main() -> None:
    parser = argparse.ArgumentParser(description="Snapshot the built-in checkpoint tables for release review.")
    parser.add_argument(
        "--out",
        default="./docs/checkpoint_snapshot.json",
        help="Output file for checkpoint snapshot JSON",
    )
    args = parser.parse_args()

    output = Path(args.out).resolve()
    output.parent.mkdir(parents=True, exist_ok=True)

    snapshot = build_snapshot()
    with output.open("w", encoding="utf-8") as handle:
        json.dump(snapshot, handle, indent=2)

    print("Checkpoint snapshot written")
    print(json.dumps({"out": str(output), "hash": snapshot["baseline_hash"]}, indent=2))


if __name__ == "__main__":
    main()
