"""DNS SRV based service discovery."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import dns.resolver

from lura.sd.register import register_subscriber_factory
from lura.sd.subscriber import Backend, Subscriber

NAMESPACE = "dns"

# Seconds the resolved hosts are cached for.
TTL = 30.0


@dataclass(frozen=True)
class SRVRecord:
    """One SRV resource record."""

    target: str
    port: int
    priority: int = 0
    weight: int = 0


Lookup = Callable[[str, str, str], "tuple[str, list[SRVRecord]]"]


def default_lookup(service: str, proto: str, name: str) -> tuple[str, list[SRVRecord]]:
    """Resolve SRV records, returning the canonical name and the records."""
    qname = f"_{service}._{proto}.{name}" if service or proto else name
    answer = dns.resolver.resolve(qname, "SRV")
    records = sorted(
        (
            SRVRecord(
                target=rdata.target.to_text(),
                port=rdata.port,
                priority=rdata.priority,
                weight=rdata.weight,
            )
            for rdata in answer
        ),
        key=lambda record: record.priority,
    )
    return answer.canonical_name.to_text(), records


DEFAULT_LOOKUP: Lookup = default_lookup


def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class DNSSubscriber(Subscriber):
    """Keeps a cache of hosts resolved from SRV records, refreshed every ttl seconds."""

    def __init__(self, name: str, lookup: Lookup, ttl: float) -> None:
        self.name = name
        self.ttl = ttl
        self._lookup = lookup
        self._cache: list[str] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._update()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def hosts(self) -> list[str]:
        with self._lock:
            return list(self._cache)

    def close(self) -> None:
        """Stop refreshing the cache."""
        self._stop.set()

    def __enter__(self) -> DNSSubscriber:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _loop(self) -> None:
        while not self._stop.wait(self.ttl):
            self._update()

    def _update(self) -> None:
        try:
            instances = self._resolve()
        except Exception:
            return
        with self._lock:
            self._cache = instances

    def _resolve(self) -> list[str]:
        _, records = self._lookup("", "", self.name)
        instances = []
        for record in records:
            url = f"http://{_join_host_port(record.target, record.port)}"
            # weights are 16-bit unsigned, so a zero weight wraps around
            copies = 1 + ((record.weight - 1) & 0xFFFF)
            instances.extend([url] * copies)
        return instances


def new_detailed(name: str, lookup: Lookup, ttl: float) -> DNSSubscriber:
    """Create a DNS subscriber with the received values."""
    return DNSSubscriber(name, lookup, ttl)


def new(name: str) -> DNSSubscriber:
    """Create a DNS subscriber with the default lookup and TTL."""
    return new_detailed(name, DEFAULT_LOOKUP, TTL)


def subscriber_factory(cfg: Backend) -> Subscriber:
    """Build a DNS SRV subscriber for the first host of the backend."""
    return new(cfg.host[0])


def register() -> None:
    """Register the DNS subscriber factory under its namespace."""
    register_subscriber_factory(NAMESPACE, subscriber_factory)