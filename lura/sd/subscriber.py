"""Subscribers keep the set of backend hosts up to date."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Backend:
    """The part of a backend definition used for service discovery and transport."""

    host: list[str] = field(default_factory=list)
    sd: str = ""
    url_pattern: str = ""
    method: str = ""
    extra_config: dict[str, Any] = field(default_factory=dict)


class Subscriber(ABC):
    """Something that can tell which backend hosts are available."""

    @abstractmethod
    def hosts(self) -> list[str]:
        """Return the current list of hosts, raising on failure."""


class SubscriberFunc(Subscriber):
    """Adapter that turns a plain callable into a subscriber."""

    def __init__(self, func: Callable[[], list[str]]) -> None:
        self._func = func

    def hosts(self) -> list[str]:
        return self._func()


class FixedSubscriber(list, Subscriber):
    """A constant set of backend hosts that never gets updated."""

    def hosts(self) -> list[str]:
        return list(self)


SubscriberFactory = Callable[[Backend], Subscriber]


def fixed_subscriber_factory(cfg: Backend) -> Subscriber:
    """Build a FixedSubscriber from the hosts of the received backend."""
    return FixedSubscriber(cfg.host)