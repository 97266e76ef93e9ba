from __future__ import annotations

import unittest
from dataclasses import replace
from unittest import mock

import dns.exception
import dns.flags
import dns.resolver

from chainpin.checkpoints import CheckpointStore
from chainpin.config import CONFIG
from chainpin.dns_feed import DnsTxtResolver, ResolutionUnavailable, load_checkpoints_from_dns, parse_txt_record
from chainpin.models import CheckpointEntry


H1 = "11" * 32
H2 = "22" * 32
H3 = "33" * 32

DNS_CONFIG = replace(
    CONFIG,
    mainnet_dns_domains=("checkpoints.example.org", "checkpoints.example.net"),
    testnet_dns_domains=("testpoints.example.org",),
)


class FakeResolver:
    def __init__(self, records: list[str] | None = None, error: Exception | None = None) -> None:
        self.records = records or []
        self.error = error
        self.calls: list[tuple[str, ...]] = []

    def fetch_txt_records(self, domains):
        self.calls.append(tuple(domains))
        if self.error is not None:
            raise self.error
        return list(self.records)


class _Rdata:
    def __init__(self, *chunks: bytes) -> None:
        self.strings = chunks


class _Answer:
    def __init__(self, rdatas: list[_Rdata], authenticated: bool = True) -> None:
        self._rdatas = rdatas
        self.response = mock.Mock(flags=dns.flags.QR | (dns.flags.AD if authenticated else 0))

    def __iter__(self):
        return iter(self._rdatas)


class ParseTxtRecordTest(unittest.TestCase):
    def test_parses_height_and_hash(self) -> None:
        self.assertEqual(parse_txt_record(f"1234:{H1}"), CheckpointEntry(1234, H1))
        self.assertEqual(parse_txt_record(f" 7:{H2}"), CheckpointEntry(7, H2))

    def test_padding_around_hash_is_ignored(self) -> None:
        self.assertEqual(parse_txt_record(f"10: {H1}"), CheckpointEntry(10, H1))
        self.assertEqual(parse_txt_record(f" 10 : {H1}\t"), CheckpointEntry(10, H1))
        self.assertIsNone(parse_txt_record(f"10: {H1[:-1]} "))

    def test_rejects_malformed_records(self) -> None:
        for record in (
            H1,
            f"abc:{H1}",
            f"-5:{H1}",
            f"12x:{H1}",
            f":{H1}",
            "12:" + "zz" * 32,
            "12:" + "11" * 31,
            f"12:{H1}:extra",
            "",
        ):
            with self.subTest(record=record):
                self.assertIsNone(parse_txt_record(record))


class DnsLoaderTest(unittest.TestCase):
    def test_no_configured_domains_is_noop_success(self) -> None:
        resolver = FakeResolver([f"10:{H1}"])
        store = CheckpointStore()
        self.assertTrue(load_checkpoints_from_dns(store, "stagenet", resolver=resolver, config=DNS_CONFIG))
        self.assertEqual(resolver.calls, [])
        self.assertTrue(store.is_empty())

    def test_network_selects_domain_list(self) -> None:
        resolver = FakeResolver([])
        store = CheckpointStore()
        load_checkpoints_from_dns(store, "testnet", resolver=resolver, config=DNS_CONFIG)
        load_checkpoints_from_dns(store, "fakechain", resolver=resolver, config=DNS_CONFIG)
        self.assertEqual(
            resolver.calls,
            [("testpoints.example.org",), ("checkpoints.example.org", "checkpoints.example.net")],
        )

    def test_valid_records_are_added_and_malformed_skipped(self) -> None:
        resolver = FakeResolver([f"10:{H1}", "garbage", f"x:{H2}", "20:beef", f"30:{H3}"])
        store = CheckpointStore()
        self.assertTrue(load_checkpoints_from_dns(store, "mainnet", resolver=resolver, config=DNS_CONFIG))
        self.assertEqual(sorted(store.get_points()), [10, 30])

    def test_records_below_frontier_are_not_prefiltered(self) -> None:
        store = CheckpointStore()
        store.add_checkpoint(100, H1)
        resolver = FakeResolver([f"50:{H2}"])
        self.assertTrue(load_checkpoints_from_dns(store, "mainnet", resolver=resolver, config=DNS_CONFIG))
        self.assertEqual(store.get_points()[50], bytes.fromhex(H2))

    def test_conflicting_record_does_not_rewrite_pin(self) -> None:
        store = CheckpointStore()
        store.add_checkpoint(100, H1)
        resolver = FakeResolver([f"100:{H2}", f"100:{H1}"])
        with self.assertLogs("chainpin.checkpoints", level="WARNING"):
            self.assertTrue(load_checkpoints_from_dns(store, "mainnet", resolver=resolver, config=DNS_CONFIG))
        self.assertEqual(store.get_points(), {100: bytes.fromhex(H1)})

    def test_resolution_failure_is_absorbed(self) -> None:
        store = CheckpointStore()
        resolver = FakeResolver(error=ResolutionUnavailable("timeout"))
        with self.assertLogs("chainpin.dns_feed", level="WARNING"):
            self.assertTrue(load_checkpoints_from_dns(store, "mainnet", resolver=resolver, config=DNS_CONFIG))
        self.assertTrue(store.is_empty())


class DnsTxtResolverTest(unittest.TestCase):
    def _resolver_with(self, answers: dict[str, object], require_dnssec: bool = True) -> DnsTxtResolver:
        def resolve(domain: str, rdtype: str):
            self.assertEqual(rdtype, "TXT")
            outcome = answers[domain]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        backend = mock.Mock()
        backend.resolve.side_effect = resolve
        resolver = DnsTxtResolver(timeout=1.0, require_dnssec=require_dnssec)
        patcher = mock.patch.object(resolver, "_build_resolver", return_value=backend)
        patcher.start()
        self.addCleanup(patcher.stop)
        return resolver

    def test_collects_and_deduplicates_records(self) -> None:
        resolver = self._resolver_with(
            {
                "a.example": _Answer([_Rdata(b"10:", H1.encode()), _Rdata(f"20:{H2}".encode())]),
                "b.example": _Answer([_Rdata(f"10:{H1}".encode())]),
            }
        )
        self.assertEqual(
            resolver.fetch_txt_records(["a.example", "b.example"]),
            [f"10:{H1}", f"20:{H2}"],
        )

    def test_failed_domain_is_skipped(self) -> None:
        resolver = self._resolver_with(
            {
                "a.example": dns.exception.Timeout(),
                "b.example": _Answer([_Rdata(f"10:{H1}".encode())]),
            }
        )
        with self.assertLogs("chainpin.dns_feed", level="WARNING"):
            self.assertEqual(resolver.fetch_txt_records(["a.example", "b.example"]), [f"10:{H1}"])

    def test_unauthenticated_answers_are_dropped(self) -> None:
        answers = {"a.example": _Answer([_Rdata(f"10:{H1}".encode())], authenticated=False)}
        resolver = self._resolver_with(answers)
        with self.assertRaises(ResolutionUnavailable):
            resolver.fetch_txt_records(["a.example"])

        relaxed = self._resolver_with(answers, require_dnssec=False)
        self.assertEqual(relaxed.fetch_txt_records(["a.example"]), [f"10:{H1}"])

    def test_all_domains_failing_raises(self) -> None:
        resolver = self._resolver_with({"a.example": dns.exception.Timeout()})
        with self.assertRaises(ResolutionUnavailable):
            resolver.fetch_txt_records(["a.example"])

    def test_empty_domain_list_returns_nothing(self) -> None:
        self.assertEqual(DnsTxtResolver().fetch_txt_records([]), [])

    def test_missing_resolver_configuration_is_unavailable(self) -> None:
        resolver = DnsTxtResolver()
        with mock.patch(
            "chainpin.dns_feed.dns.resolver.Resolver",
            side_effect=dns.resolver.NoResolverConfiguration(),
        ):
            with self.assertRaises(ResolutionUnavailable):
                resolver.fetch_txt_records(["a.example"])


if __name__ == "__main__":
    unittest.main()
