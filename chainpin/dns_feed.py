from __future__ import annotations

import logging
import re
from typing import Sequence

import dns.exception
import dns.flags
import dns.resolver

from .checkpoints import CheckpointStore
from .config import CONFIG, CheckpointConfig, dns_domains_for, normalize_network_type
from .models import CheckpointEntry, CheckpointError, MalformedDigest, parse_hash_hex


logger = logging.getLogger(__name__)

_HEIGHT_DIGITS = re.compile(r"[0-9]+")


class ResolutionUnavailable(CheckpointError):
    pass


class DnsTxtResolver:
    """Fetch TXT records for checkpoint domains through the system resolver.

    With ``require_dnssec`` set, answers the upstream resolver did not mark as
    authenticated (AD flag) are dropped. A domain that fails is skipped; only
    when no domain yields a record is ``ResolutionUnavailable`` raised.
    """

    def __init__(
        self,
        timeout: float = CONFIG.dns_timeout_seconds,
        require_dnssec: bool = CONFIG.dns_require_dnssec,
        nameservers: Sequence[str] | None = None,
    ) -> None:
        self.timeout = max(0.1, float(timeout))
        self.require_dnssec = bool(require_dnssec)
        self.nameservers = list(nameservers) if nameservers else None

    def _build_resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver(configure=self.nameservers is None)
        if self.nameservers is not None:
            resolver.nameservers = list(self.nameservers)
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout
        if self.require_dnssec:
            resolver.use_edns(0, dns.flags.DO, 1232)
            resolver.flags = dns.flags.RD | dns.flags.AD
        return resolver

    def query_domain(self, resolver: dns.resolver.Resolver, domain: str) -> list[str]:
        answer = resolver.resolve(domain, "TXT")
        if self.require_dnssec and not (answer.response.flags & dns.flags.AD):
            logger.warning("Ignoring TXT records for %s: answer is not DNSSEC-validated", domain)
            return []

        records: list[str] = []
        for rdata in answer:
            try:
                records.append(b"".join(rdata.strings).decode("ascii"))
            except UnicodeDecodeError:
                logger.debug("Skipping non-ASCII TXT record for %s", domain)
        return records

    def fetch_txt_records(self, domains: Sequence[str]) -> list[str]:
        if not domains:
            return []
        try:
            resolver = self._build_resolver()
        except dns.exception.DNSException as exc:
            raise ResolutionUnavailable(f"DNS resolver unavailable: {exc}") from exc

        records: list[str] = []
        for domain in domains:
            try:
                found = self.query_domain(resolver, domain)
            except dns.exception.DNSException as exc:
                logger.warning("TXT lookup failed for %s: %s", domain, exc)
                continue
            for record in found:
                if record not in records:
                    records.append(record)

        if not records:
            raise ResolutionUnavailable(f"No TXT records obtained from {len(domains)} domain(s)")
        return records


def parse_txt_record(record: str, hash_bytes: int = CONFIG.hash_bytes) -> CheckpointEntry | None:
    height_text, sep, hash_text = record.partition(":")
    if not sep:
        return None
    # Padding on either side of the separator is not part of the record.
    height_text = height_text.strip()
    hash_text = hash_text.strip()
    if not _HEIGHT_DIGITS.fullmatch(height_text):
        return None
    try:
        parse_hash_hex(hash_text, hash_bytes)
    except MalformedDigest:
        return None
    return CheckpointEntry(height=int(height_text), hash_hex=hash_text)


def load_checkpoints_from_dns(
    store: CheckpointStore,
    network: str,
    resolver: DnsTxtResolver | None = None,
    config: CheckpointConfig = CONFIG,
) -> bool:
    nettype = normalize_network_type(network)
    domains = dns_domains_for(nettype, config)
    if not domains:
        logger.debug("No checkpoint DNS domains configured for %s", nettype)
        return True

    source = resolver
    if source is None:
        source = DnsTxtResolver(
            timeout=config.dns_timeout_seconds,
            require_dnssec=config.dns_require_dnssec,
        )
    # Network I/O happens before the store is touched.
    try:
        records = source.fetch_txt_records(domains)
    except ResolutionUnavailable as exc:
        logger.warning("No checkpoints obtained from DNS for %s: %s", nettype, exc)
        return True

    entries: list[CheckpointEntry] = []
    for record in records:
        entry = parse_txt_record(record, config.hash_bytes)
        if entry is None:
            logger.debug("Skipping malformed checkpoint TXT record %r", record)
            continue
        entries.append(entry)

    results = store.add_checkpoints(entries)
    accepted = sum(1 for ok in results if ok)
    logger.info(
        "DNS checkpoints for %s: %d records, %d accepted, %d rejected",
        nettype,
        len(records),
        accepted,
        len(results) - accepted,
    )
    return True
