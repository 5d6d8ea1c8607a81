"""Balancing strategies that pick the backend host to use."""

from __future__ import annotations

import itertools
import os
import random
import threading
from abc import ABC, abstractmethod

from lura.sd.subscriber import FixedSubscriber, Subscriber


class NoHostsError(Exception):
    """Raised when a balancer has no hosts to choose from."""

    def __init__(self, message: str = "no hosts available") -> None:
        super().__init__(message)


class Balancer(ABC):
    """Selects a backend host."""

    @abstractmethod
    def host(self) -> str:
        """Return the host to use, raising on failure."""


class _SubscriberBalancer(Balancer):
    def __init__(self, subscriber: Subscriber) -> None:
        self.subscriber = subscriber

    def _hosts(self) -> list[str]:
        hosts = self.subscriber.hosts()
        if not hosts:
            raise NoHostsError()
        return hosts


class RoundRobinBalancer(_SubscriberBalancer):
    """Cycles through the available hosts in order."""

    def __init__(self, subscriber: Subscriber) -> None:
        super().__init__(subscriber)
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def host(self) -> str:
        hosts = self._hosts()
        with self._lock:
            position = next(self._counter)
        return hosts[position % len(hosts)]


class RandomBalancer(_SubscriberBalancer):
    """Picks one of the available hosts at random."""

    def __init__(self, subscriber: Subscriber, rng: random.Random | None = None) -> None:
        super().__init__(subscriber)
        self._rng = rng or random.Random()

    def host(self) -> str:
        hosts = self._hosts()
        return hosts[self._rng.randrange(len(hosts))]


class NopBalancer(Balancer):
    """Always returns the same host."""

    def __init__(self, host: str) -> None:
        self._host = host

    def host(self) -> str:
        return self._host


def _single_host(subscriber: Subscriber) -> str | None:
    if isinstance(subscriber, FixedSubscriber) and len(subscriber) == 1:
        return subscriber[0]
    return None


def new_balancer(subscriber: Subscriber) -> Balancer:
    """Round robin on a single processor, random selection otherwise."""
    if (os.cpu_count() or 1) == 1:
        return new_round_robin_lb(subscriber)
    return new_random_lb(subscriber)


def new_round_robin_lb(subscriber: Subscriber) -> Balancer:
    """Return a balancer using a round robin strategy."""
    single = _single_host(subscriber)
    if single is not None:
        return NopBalancer(single)
    return RoundRobinBalancer(subscriber)


def new_random_lb(subscriber: Subscriber) -> Balancer:
    """Return a balancer using a pseudo random strategy."""
    single = _single_host(subscriber)
    if single is not None:
        return NopBalancer(single)
    return RandomBalancer(subscriber)