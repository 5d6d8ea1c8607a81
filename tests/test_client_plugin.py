import html
import logging
from urllib.parse import urlsplit

import pytest

from lura.client.executor import Request, Response
from lura.client.plugin import (
    NAMESPACE,
    LoaderError,
    http_request_executor,
    load,
    register_client,
)
from lura.sd.subscriber import Backend


class ExampleRegisterer:
    def __init__(self, name):
        self.name = name
        self.logger = None

    def register_logger(self, logger):
        self.logger = logger

    def register_clients(self, f):
        f(self.name, self._register_clients)

    def _register_clients(self, extra):
        name = extra.get("name")
        if not isinstance(name, str):
            raise ValueError("wrong config")
        if name != self.name:
            raise ValueError(f"unknown register {name}")

        def handler(request):
            path = urlsplit(request.url).path
            return Response(status_code=200, body=f'Hello, "{html.escape(path)}"'.encode())

        return handler


class RaisingRegisterer:
    name = "raising"

    def register_clients(self, f):
        raise RuntimeError("boom")


def _fallback():
    calls = []

    def sentinel(request):
        return Response(status_code=599)

    def next_factory(cfg):
        calls.append(cfg)
        return sentinel

    return next_factory, sentinel, calls


def test_load_with_logger():
    logger = logging.getLogger("tests.client.plugin")
    registerer = ExampleRegisterer("krakend-client-example")
    total = load([registerer], register_client, logger)
    assert total == 1
    assert registerer.logger is logger

    def next_factory(cfg):
        raise AssertionError("this factory should not been called")

    hre = http_request_executor(logger, next_factory)
    h = hre(Backend(extra_config={NAMESPACE: {"name": "krakend-client-example"}}))
    resp = h(Request("http://some.example.tld/path"))
    assert resp.status_code == 200
    assert resp.body == b'Hello, "/path"'


def test_load_without_logger_does_not_register_logger():
    collected = []
    registerer = ExampleRegisterer("solo-client")
    total = load([registerer], lambda name, handler: collected.append(name))
    assert total == 1
    assert collected == ["solo-client"]
    assert registerer.logger is None


def test_load_reports_errors():
    collected = []
    with pytest.raises(LoaderError) as info:
        load(
            [object(), RaisingRegisterer(), ExampleRegisterer("good-client")],
            lambda name, handler: collected.append(name),
        )
    err = info.value
    assert err.loaded == 1
    assert collected == ["good-client"]
    assert len(err.errors) == 2
    assert str(err).startswith("plugin loader found 2 error(s): \nopening plugin 0 (")
    assert "http-request-executor plugin loader: unknown type" in err.errors[0]
    assert err.errors[1] == "opening plugin 1 (raising): boom"


def test_loader_error_message():
    assert str(LoaderError(["a", "b"])) == "plugin loader found 2 error(s): \na\nb"


@pytest.mark.parametrize(
    "extra_config",
    [
        {},
        {NAMESPACE: "not a map"},
        {NAMESPACE: {}},
        {NAMESPACE: {"name": 42}},
        {NAMESPACE: {"name": "never-registered-client"}},
    ],
)
def test_falls_back_to_next_factory(extra_config):
    next_factory, sentinel, calls = _fallback()
    cfg = Backend(url_pattern="/x", extra_config=extra_config)
    result = http_request_executor(None, next_factory)(cfg)
    assert result is sentinel
    assert calls == [cfg]


def test_non_callable_plugin_falls_back(caplog):
    register_client("not-callable-client", "text")
    next_factory, sentinel, calls = _fallback()
    cfg = Backend(extra_config={NAMESPACE: {"name": "not-callable-client"}})
    with caplog.at_level(logging.WARNING):
        result = http_request_executor(None, next_factory)(cfg)
    assert result is sentinel
    assert "wrong plugin handler type" in caplog.text


def test_failing_handler_factory_falls_back(caplog):
    def failing(extra):
        raise ValueError("bad config")

    register_client("failing-client", failing)
    next_factory, sentinel, calls = _fallback()
    cfg = Backend(extra_config={NAMESPACE: {"name": "failing-client"}})
    with caplog.at_level(logging.WARNING):
        result = http_request_executor(None, next_factory)(cfg)
    assert result is sentinel
    assert calls == [cfg]
    assert "bad config" in caplog.text


def test_handler_factory_receives_extra_config():
    seen = []

    def factory(extra):
        seen.append(extra)
        return lambda request: Response(status_code=204, body=request.method.encode())

    register_client("extra-client", factory)
    extra = {"name": "extra-client", "option": 7}
    next_factory, _, calls = _fallback()
    h = http_request_executor(None, next_factory)(Backend(extra_config={NAMESPACE: extra}))
    resp = h(Request("http://some.example.tld/", method="POST"))
    assert seen == [extra]
    assert calls == []
    assert resp.status_code == 204
    assert resp.body == b"POST"