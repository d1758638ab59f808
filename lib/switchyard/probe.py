"""
Switchyard - Probe Subsystem

A single persistent worker thread measures endpoint reachability and latency.
Requests and results travel through queues; every request carries a sequence
number so the UI can drop results that arrive after a newer one.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable

import requests

from .constants import PROBE_THREAD_NAME, PROBE_TIMEOUT, WORKER_JOIN_TIMEOUT
from .errors import ProbeFailure


def probe_target(app_value: str, provider_id: str) -> str:
    """Board key for a provider; ids are only unique within one app."""
    return f"{app_value}:{provider_id}"


@dataclass(frozen=True, slots=True)
class ProbeRequest:
    target: str
    url: str
    seq: int


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of one reachability check."""

    target: str
    url: str
    seq: int
    ok: bool
    latency_ms: float | None = None
    status: int | None = None
    error: str | None = None

    @classmethod
    def failure(cls, request: ProbeRequest, error: str) -> "ProbeResult":
        return cls(target=request.target, url=request.url, seq=request.seq, ok=False, error=error)


_STOP = object()


class ProbeWorker:
    """Owns the one background thread and HTTP session used for probing."""

    def __init__(
        self,
        *,
        timeout: float = PROBE_TIMEOUT,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.timeout = timeout
        self._session_factory = session_factory
        self._requests: queue.Queue = queue.Queue()
        self.results: queue.Queue[ProbeResult] = queue.Queue()
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self.logger = logging.getLogger('ProbeWorker')

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.alive:
            return
        self._thread = threading.Thread(target=self._run, name=PROBE_THREAD_NAME, daemon=True)
        self._thread.start()
        self.logger.debug("Probe worker started")

    def stop(self, timeout: float = WORKER_JOIN_TIMEOUT) -> None:
        if self._thread is None:
            return
        self._requests.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            self.logger.warning("Probe worker did not stop within %.1fs", timeout)
        else:
            self.logger.debug("Probe worker stopped")
        self._thread = None

    def submit(self, target: str, url: str) -> ProbeRequest:
        """Queue a probe; returns the stamped request immediately."""
        with self._seq_lock:
            request = ProbeRequest(target=target, url=url, seq=next(self._seq))
        self._requests.put(request)
        self.logger.debug("Probe queued: %s seq=%d %s", target, request.seq, url)
        return request

    def drain(self) -> list[ProbeResult]:
        """Non-blocking: every result delivered since the last drain."""
        drained: list[ProbeResult] = []
        while True:
            try:
                drained.append(self.results.get_nowait())
            except queue.Empty:
                return drained

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def _collect(self, first) -> tuple[list[ProbeRequest], bool]:
        """Coalesce everything already queued: latest request per target wins."""
        latest: dict[str, ProbeRequest] = {}
        stop = False
        item = first
        while True:
            if item is _STOP:
                stop = True
            else:
                latest[item.target] = item
            try:
                item = self._requests.get_nowait()
            except queue.Empty:
                break
        return sorted(latest.values(), key=lambda request: request.seq), stop

    def _run(self) -> None:
        session = self._session_factory()
        try:
            while True:
                batch, stop = self._collect(self._requests.get())
                for request in batch:
                    self.results.put(self.execute(session, request))
                if stop:
                    return
        finally:
            session.close()

    def execute(self, session: requests.Session, request: ProbeRequest) -> ProbeResult:
        """Run one check. Never raises: every failure becomes a failed result."""
        started = time.perf_counter()
        try:
            try:
                response = session.get(request.url, timeout=self.timeout, allow_redirects=False)
            except requests.Timeout as exc:
                raise ProbeFailure(f"timed out after {self.timeout:.0f}s") from exc
            except requests.ConnectionError as exc:
                raise ProbeFailure(f"connection failed: {exc.__class__.__name__}") from exc
            except requests.RequestException as exc:
                raise ProbeFailure(str(exc) or exc.__class__.__name__) from exc
        except ProbeFailure as exc:
            self.logger.debug("Probe %s seq=%d failed: %s", request.target, request.seq, exc)
            return ProbeResult.failure(request, str(exc))
        except Exception as exc:
            self.logger.error("Probe %s seq=%d crashed: %s", request.target, request.seq, exc, exc_info=True)
            return ProbeResult.failure(request, f"unexpected error: {exc}")

        latency_ms = (time.perf_counter() - started) * 1000.0
        try:
            status = response.status_code
        finally:
            response.close()
        self.logger.debug("Probe %s seq=%d -> HTTP %s in %.0f ms", request.target, request.seq, status, latency_ms)
        return ProbeResult(
            target=request.target,
            url=request.url,
            seq=request.seq,
            ok=status < 500,
            latency_ms=latency_ms,
            status=status,
            error=None if status < 500 else f"HTTP {status}",
        )


class ProbeBoard:
    """UI-side view of the newest result per target."""

    def __init__(self) -> None:
        self._pending: dict[str, int] = {}
        self._results: dict[str, ProbeResult] = {}

    def mark_pending(self, request: ProbeRequest) -> None:
        self._pending[request.target] = max(request.seq, self._pending.get(request.target, 0))

    def accept(self, result: ProbeResult) -> bool:
        """Store the result unless one with a newer sequence number is already visible."""
        current = self._results.get(result.target)
        if current is not None and result.seq <= current.seq:
            return False
        self._results[result.target] = result
        if self._pending.get(result.target, 0) <= result.seq:
            self._pending.pop(result.target, None)
        return True

    def get(self, target: str) -> ProbeResult | None:
        return self._results.get(target)

    def is_pending(self, target: str) -> bool:
        return target in self._pending


__all__ = ["ProbeRequest", "ProbeResult", "ProbeWorker", "ProbeBoard", "probe_target"]
