"""Plugins that wrap the HTTP handler served by the gateway."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from lura.server.server import ServiceConfig, WSGIApp

NAMESPACE = "github_com/devopsfaith/krakend/transport/http/server/handler"

HandlerFactory = Callable[[dict, WSGIApp], WSGIApp]
RegisterHandlerFunc = Callable[[str, HandlerFactory], None]
RunServer = Callable[..., Any]

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


_server_register = _Registry()


class LoaderError(Exception):
    """Raised when one or more plugins could not be loaded."""

    def __init__(self, errors: list[str], loaded: int = 0) -> None:
        self.errors = list(errors)
        self.loaded = loaded
        super().__init__(
            f"plugin loader found {len(self.errors)} error(s): \n" + "\n".join(self.errors)
        )


def register_handler(name: str, handler: HandlerFactory) -> None:
    """Register a handler factory under the given name."""
    _server_register.register(NAMESPACE, name, handler)


def _plugin_name(registerer: Any) -> str:
    name = getattr(registerer, "name", None)
    return name if isinstance(name, str) else repr(registerer)


def _open(registerer: Any, rcf: RegisterHandlerFunc, logger: logging.Logger | None) -> None:
    register_handlers = getattr(registerer, "register_handlers", None)
    if not callable(register_handlers):
        raise TypeError("http-server-handler plugin loader: unknown type")
    if logger is not None:
        register_logger = getattr(registerer, "register_logger", None)
        if callable(register_logger):
            register_logger(logger)
    register_handlers(rcf)


def load(
    registerers: Iterable[Any],
    rcf: RegisterHandlerFunc,
    logger: logging.Logger | None = None,
) -> int:
    """Let every registerer register its handlers; return how many succeeded.

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


def _requested_plugins(extra: dict) -> list[str] | None:
    name = extra.get("name")
    if isinstance(name, str):
        return [name]
    if isinstance(name, (list, tuple)):
        return [item for item in name if isinstance(item, str)]
    return None


def new(logger: logging.Logger | None, next_run: RunServer) -> RunServer:
    """Wrap a server runner so configured plugins wrap the handler, in order."""
    log = logger if logger is not None else _log

    def run(cfg: ServiceConfig, handler: WSGIApp, stop_event: threading.Event | None = None):
        if NAMESPACE not in cfg.extra_config:
            log.debug("http-server-handler: no extra config")
            return next_run(cfg, handler, stop_event)
        extra = cfg.extra_config[NAMESPACE]
        if not isinstance(extra, dict):
            log.debug("http-server-handler: wrong extra config type")
            return next_run(cfg, handler, stop_event)

        plugins = _server_register.get(NAMESPACE)
        if plugins is None:
            log.debug("http-server-handler: no plugins registered for the module")
            return next_run(cfg, handler, stop_event)

        names = _requested_plugins(extra)
        if names is None:
            log.debug("http-server-handler: no plugins required in the extra config")
            return next_run(cfg, handler, stop_event)

        for name in names:
            if name not in plugins:
                log.debug("http-server-handler: no plugin registered as %s", name)
                return next_run(cfg, handler, stop_event)

            factory = plugins[name]
            if not callable(factory):
                log.warning("http-server-handler: wrong plugin handler type: %s", name)
                return next_run(cfg, handler, stop_event)

            try:
                wrapped = factory(extra, handler)
            except Exception as exc:
                log.warning("http-server-handler: error getting the plugin handler: %s", exc)
                return next_run(cfg, handler, stop_event)

            log.debug("http-server-handler: injecting plugin %s", name)
            handler = wrapped

        return next_run(cfg, handler, stop_event)

    return run