from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

from .checkpoints import CheckpointStore
from .config import CONFIG, CheckpointConfig
from .dns_feed import DnsTxtResolver, load_checkpoints_from_dns
from .hashfile import load_checkpoints_from_json


logger = logging.getLogger(__name__)


def load_new_checkpoints(
    store: CheckpointStore,
    file_path: str | Path,
    network: str,
    dns_enabled: bool,
    resolver: DnsTxtResolver | None = None,
    config: CheckpointConfig = CONFIG,
) -> bool:
    result = load_checkpoints_from_json(store, file_path)
    if dns_enabled:
        result = load_checkpoints_from_dns(store, network, resolver=resolver, config=config) and result
    return result


class CheckpointRefresher:
    """Re-run checkpoint loading on a fixed interval in a daemon thread."""

    def __init__(
        self,
        store: CheckpointStore,
        file_path: str | Path,
        network: str,
        dns_enabled: bool = True,
        interval: float | None = None,
        resolver: DnsTxtResolver | None = None,
        config: CheckpointConfig = CONFIG,
    ) -> None:
        self.store = store
        self.file_path = Path(file_path)
        self.network = network
        self.dns_enabled = bool(dns_enabled)
        self.interval = float(config.refresh_interval_seconds if interval is None else interval)
        self.resolver = resolver
        self.config = config
        self.stop_event = threading.Event()
        self.last_result: bool | None = None
        self.last_refresh_at: float | None = None
        self._refresh_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    def refresh_now(self) -> bool:
        with self._refresh_lock:
            result = load_new_checkpoints(
                self.store,
                self.file_path,
                self.network,
                self.dns_enabled,
                resolver=self.resolver,
                config=self.config,
            )
            self.last_result = result
            self.last_refresh_at = time.time()
        if not result:
            logger.warning("Checkpoint refresh failed; keeping %d known checkpoints", len(self.store))
        return result

    def _refresh_loop(self) -> None:
        while not self.stop_event.wait(self.interval):
            try:
                self.refresh_now()
            except Exception:
                logger.exception("Unexpected error during checkpoint refresh")
                continue

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.interval <= 0 or self.is_running():
            return
        self.stop_event.clear()
        self._thread = threading.Thread(target=self._refresh_loop, name="chainpin-refresh-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self.stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        # Keep the handle while the loop is still alive.
        if self._thread is not None and not self._thread.is_alive():
            self._thread = None
