from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from chainpin.baseline import init_default_checkpoints
from chainpin.checkpoints import CheckpointStore
from chainpin.config import CONFIG, MAINNET, NETWORK_TYPES, normalize_network_type
from chainpin.hashfile import write_hashfile
from chainpin.models import CheckpointError
from chainpin.refresh import load_new_checkpoints


def _hashfile_path(args: argparse.Namespace) -> Path:
    explicit = str(getattr(args, "hashfile", "") or "").strip()
    if explicit:
        return Path(explicit)
    return Path(args.data_dir) / CONFIG.hashfile_name


def _build_store(args: argparse.Namespace, load_extra: bool = True) -> tuple[CheckpointStore, bool]:
    store = CheckpointStore()
    init_default_checkpoints(store, args.network)
    if not load_extra:
        return store, True
    ok = load_new_checkpoints(store, _hashfile_path(args), args.network, bool(getattr(args, "dns", False)))
    return store, ok


def _print_json(payload: dict[str, object]) -> None:
    print(json.dumps(payload, indent=2))


def cmd_baseline(args: argparse.Namespace) -> None:
    store, _ = _build_store(args, load_extra=False)
    _print_json(
        {
            "network": args.network,
            "count": len(store),
            "max_height": store.get_max_height(),
            "checkpoints": [entry.to_dict() for entry in store.entries()],
        }
    )


def cmd_refresh(args: argparse.Namespace) -> None:
    store = CheckpointStore()
    baseline_count = init_default_checkpoints(store, args.network)
    ok = load_new_checkpoints(store, _hashfile_path(args), args.network, bool(args.dns))
    _print_json(
        {
            "network": args.network,
            "ok": ok,
            "hashfile": str(_hashfile_path(args)),
            "dns": bool(args.dns),
            "baseline_count": baseline_count,
            "count": len(store),
            "added": len(store) - baseline_count,
            "max_height": store.get_max_height(),
        }
    )
    if not ok:
        raise SystemExit(1)


def cmd_check_block(args: argparse.Namespace) -> None:
    store, _ = _build_store(args)
    passed, is_checkpoint = store.check_block(args.height, args.hash)
    _print_json(
        {
            "height": args.height,
            "hash": args.hash,
            "passed": passed,
            "is_checkpoint": is_checkpoint,
            "in_checkpoint_zone": store.is_in_checkpoint_zone(args.height),
        }
    )
    if not passed:
        raise SystemExit(2)


def cmd_alt_allowed(args: argparse.Namespace) -> None:
    store, _ = _build_store(args)
    _print_json(
        {
            "chain_height": args.chain_height,
            "block_height": args.block_height,
            "allowed": store.is_alternative_block_allowed(args.chain_height, args.block_height),
        }
    )


def cmd_zone(args: argparse.Namespace) -> None:
    store, _ = _build_store(args)
    _print_json(
        {
            "height": args.height,
            "in_checkpoint_zone": store.is_in_checkpoint_zone(args.height),
            "max_height": store.get_max_height(),
        }
    )


def cmd_export(args: argparse.Namespace) -> None:
    store, ok = _build_store(args)
    if not ok:
        raise CheckpointError(f"Failed to load checkpoints file '{_hashfile_path(args)}'")
    target = write_hashfile(args.out, store.entries())
    _print_json({"out": str(target.resolve()), "count": len(store), "max_height": store.get_max_height()})


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data-dir", default="./data", help="Node data directory holding the checkpoints file")
    parser.add_argument("--hashfile", help="Explicit checkpoints JSON file (overrides --data-dir)")
    parser.add_argument("--dns", action="store_true", help="Also load checkpoints from DNS TXT records")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{CONFIG.coin_name} block checkpoint tool",
    )
    parser.add_argument(
        "--network",
        type=normalize_network_type,
        default=MAINNET,
        help=f"Network type ({', '.join(NETWORK_TYPES)})",
    )
    parser.add_argument("--log-level", default="warning", help="Logging level (debug, info, warning, error)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    baseline = subparsers.add_parser("baseline", help="List built-in checkpoints")
    baseline.set_defaults(func=cmd_baseline)

    refresh = subparsers.add_parser("refresh", help="Load checkpoints file and DNS records on top of the baseline")
    _add_source_args(refresh)
    refresh.set_defaults(func=cmd_refresh)

    check_block = subparsers.add_parser("check-block", help="Check a block hash against the checkpoints")
    check_block.add_argument("--height", type=int, required=True, help="Block height")
    check_block.add_argument("--hash", required=True, help="Block hash (hex)")
    _add_source_args(check_block)
    check_block.set_defaults(func=cmd_check_block)

    alt_allowed = subparsers.add_parser("alt-allowed", help="Check whether an alternative block may be accepted")
    alt_allowed.add_argument("--chain-height", type=int, required=True, help="Current blockchain height")
    alt_allowed.add_argument("--block-height", type=int, required=True, help="Alternative block height")
    _add_source_args(alt_allowed)
    alt_allowed.set_defaults(func=cmd_alt_allowed)

    zone = subparsers.add_parser("zone", help="Check whether a height is inside the checkpoint zone")
    zone.add_argument("--height", type=int, required=True, help="Block height")
    _add_source_args(zone)
    zone.set_defaults(func=cmd_zone)

    export = subparsers.add_parser("export", help="Write known checkpoints to a checkpoints JSON file")
    export.add_argument("--out", required=True, help="Output checkpoints JSON file")
    _add_source_args(export)
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except CheckpointError as exc:
        print(f"Checkpoint error: {exc}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
