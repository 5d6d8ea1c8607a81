"""Registry of subscriber factories keyed by service discovery name."""

from __future__ import annotations

import threading
from typing import Any

from lura.sd.subscriber import Backend, Subscriber, SubscriberFactory, fixed_subscriber_factory


class Register:
    """A thread-safe service discovery register."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: Any) -> None:
        """Store the factory under the given name."""
        with self._lock:
            self._data[name] = factory

    def get(self, name: str) -> SubscriberFactory:
        """Return the factory for name, or the fixed one if none usable is registered."""
        with self._lock:
            factory = self._data.get(name)
        if not callable(factory):
            return fixed_subscriber_factory
        return factory


_subscriber_factories = Register()


def get_register() -> Register:
    """Return the package register."""
    return _subscriber_factories


def register_subscriber_factory(name: str, factory: SubscriberFactory) -> None:
    """Register the received factory in the package register."""
    _subscriber_factories.register(name, factory)


def get_subscriber(cfg: Backend) -> Subscriber:
    """Build the subscriber chosen by the backend's service discovery name."""
    return _subscriber_factories.get(cfg.sd)(cfg)