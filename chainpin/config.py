from dataclasses import dataclass


MAINNET = "mainnet"
TESTNET = "testnet"
STAGENET = "stagenet"
FAKECHAIN = "fakechain"

NETWORK_TYPES = (MAINNET, TESTNET, STAGENET, FAKECHAIN)


@dataclass(frozen=True)
class CheckpointConfig:
    symbol: str = "PPL"
    coin_name: str = "peoplecoin"
    # Block hashes are fixed-width digests; hex text is twice as long.
    hash_bytes: int = 32
    hashfile_name: str = "checkpoints.json"
    dns_timeout_seconds: float = 20.0
    # Only accept TXT answers the upstream resolver marked as DNSSEC-authenticated.
    dns_require_dnssec: bool = True
    # No checkpoint domains are published yet for any network.
    mainnet_dns_domains: tuple[str, ...] = ()
    testnet_dns_domains: tuple[str, ...] = ()
    stagenet_dns_domains: tuple[str, ...] = ()
    refresh_interval_seconds: float = 60.0 * 60.0


CONFIG = CheckpointConfig()


def normalize_network_type(raw: object) -> str:
    name = str(raw).strip().lower()
    if name in {"mainnet", "main"}:
        return MAINNET
    if name in {"testnet", "test"}:
        return TESTNET
    if name in {"stagenet", "stage"}:
        return STAGENET
    if name in {"fakechain", "fake"}:
        return FAKECHAIN
    raise ValueError(f"Unknown network type: {raw!r}")


def dns_domains_for(network: str, config: CheckpointConfig = CONFIG) -> tuple[str, ...]:
    nettype = normalize_network_type(network)
    if nettype == TESTNET:
        return tuple(config.testnet_dns_domains)
    if nettype == STAGENET:
        return tuple(config.stagenet_dns_domains)
    # Fakechain follows mainnet.
    return tuple(config.mainnet_dns_domains)
