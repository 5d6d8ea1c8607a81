"""Plugins that replace the HTTP client used to reach a backend."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from lura.client.executor import HTTPRequestExecutor, Request, Response
from lura.sd.subscriber import Backend

NAMESPACE = "github.com/devopsfaith/krakend/transport/http/client/executor"

ClientHandler = Callable[[Request], Response]
ClientHandlerFactory = Callable[[dict], ClientHandler]
RegisterClientFunc = Callable[[str, ClientHandlerFactory], None]
ExecutorFactory = Callable[[Backend], HTTPRequestExecutor]

_log = logging.getLogger(__name__)


class _Registry:
    """Values grouped by namespace and name."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def register(self, namespace: str, name: str, value: Any) -> None:
        with self._lock:
            self._data.setdefault(namespace, {})[name] = value

    def get(self, namespace: str) -> dict[str, Any] | None:
        with self._lock:
            values = self._data.get(namespace)
            return None if values is None else dict(values)


_client_register = _Registry()


class LoaderError(Exception):
    """Raised when one or more plugins could not be loaded."""

    def __init__(self, errors: list[str], loaded: int = 0) -> None:
        self.errors = list(errors)
        self.loaded = loaded
        super().__init__(
            f"plugin loader found {len(self.errors)} error(s): \n" + "\n".join(self.errors)
        )


def register_client(name: str, handler: ClientHandlerFactory) -> None:
    """Register a client handler factory under the given name."""
    _client_register.register(NAMESPACE, name, handler)


def _plugin_name(registerer: Any) -> str:
    name = getattr(registerer, "name", None)
    return name if isinstance(name, str) else repr(registerer)


def _open(registerer: Any, rcf: RegisterClientFunc, logger: logging.Logger | None) -> None:
    register_clients = getattr(registerer, "register_clients", None)
    if not callable(register_clients):
        raise TypeError("http-request-executor plugin loader: unknown type")
    if logger is not None:
        register_logger = getattr(registerer, "register_logger", None)
        if callable(register_logger):
            register_logger(logger)
    register_clients(rcf)


def load(
    registerers: Iterable[Any],
    rcf: RegisterClientFunc,
    logger: logging.Logger | None = None,
) -> int:
    """Let every registerer register its clients; return how many succeeded.

    Raises LoaderError, carrying the count of loaded plugins, if any failed.
    """
    errors: list[str] = []
    loaded = 0
    for index, registerer in enumerate(registerers):
        try:
            _open(registerer, rcf, logger)
        except Exception as exc:
            errors.append(f"opening plugin {index} ({_plugin_name(registerer)}): {exc}")
            continue
        loaded += 1
    if errors:
        raise LoaderError(errors, loaded)
    return loaded


def http_request_executor(
    logger: logging.Logger | None,
    next_factory: ExecutorFactory,
) -> ExecutorFactory:
    """Wrap an executor factory so backends configured for a plugin use it instead."""
    log = logger if logger is not None else _log

    def factory(cfg: Backend) -> HTTPRequestExecutor:
        if NAMESPACE not in cfg.extra_config:
            log.debug("http-request-executor: no extra config for backend %s", cfg.url_pattern)
            return next_factory(cfg)
        extra = cfg.extra_config[NAMESPACE]
        if not isinstance(extra, dict):
            log.debug(
                "http-request-executor: wrong extra config type for backend %s", cfg.url_pattern
            )
            return next_factory(cfg)

        plugins = _client_register.get(NAMESPACE)
        if plugins is None:
            log.debug("http-request-executor: no plugins registered for the module")
            return next_factory(cfg)

        name = extra.get("name")
        if not isinstance(name, str):
            log.debug(
                "http-request-executor: no name defined in the extra config for %s",
                cfg.url_pattern,
            )
            return next_factory(cfg)

        if name not in plugins:
            log.debug("http-request-executor: no plugin registered as %s", name)
            return next_factory(cfg)

        handler_factory = plugins[name]
        if not callable(handler_factory):
            log.warning("http-request-executor: wrong plugin handler type: %s", name)
            return next_factory(cfg)

        try:
            handler = handler_factory(extra)
        except Exception as exc:
            log.warning("http-request-executor: error getting the plugin handler: %s", exc)
            return next_factory(cfg)

        log.debug("http-request-executor: injecting plugin %s at %s", name, cfg.url_pattern)

        def execute(request: Request) -> Response:
            return handler(request)

        return execute

    return factory