"""HTTP server creation with optional TLS and mutual TLS."""

from __future__ import annotations

import logging
import socket
import ssl
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from socketserver import ThreadingMixIn
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

_log = logging.getLogger(__name__)

HEADER_COMPLETE_RESPONSE_VALUE = "true"
HEADER_INCOMPLETE_RESPONSE_VALUE = "false"
COMPLETE_RESPONSE_HEADER_NAME = "X-Krakend-Completed"
HEADERS_TO_SEND = ["Content-Type"]

CURVE_P256 = 23
CURVE_P384 = 24
CURVE_P521 = 25
CURVE_X25519 = 29

DEFAULT_CURVES = [CURVE_P521, CURVE_P384, CURVE_P256]

DEFAULT_CIPHER_SUITES = [
    0xC02F,  # ECDHE-RSA-AES128-GCM-SHA256
    0xC02B,  # ECDHE-ECDSA-AES128-GCM-SHA256
    0xC030,  # ECDHE-RSA-AES256-GCM-SHA384
    0xC02C,  # ECDHE-ECDSA-AES256-GCM-SHA384
    0xCCA8,  # ECDHE-RSA-CHACHA20-POLY1305
    0xCCA9,  # ECDHE-ECDSA-CHACHA20-POLY1305
]

_CURVE_NAMES = {
    CURVE_P256: "prime256v1",
    CURVE_P384: "secp384r1",
    CURVE_P521: "secp521r1",
    CURVE_X25519: "X25519",
}

_CIPHER_NAMES = {
    0xC02F: "ECDHE-RSA-AES128-GCM-SHA256",
    0xC02B: "ECDHE-ECDSA-AES128-GCM-SHA256",
    0xC030: "ECDHE-RSA-AES256-GCM-SHA384",
    0xC02C: "ECDHE-ECDSA-AES256-GCM-SHA384",
    0xCCA8: "ECDHE-RSA-CHACHA20-POLY1305",
    0xCCA9: "ECDHE-ECDSA-CHACHA20-POLY1305",
}

_VERSIONS = {
    "SSL3.0": ssl.TLSVersion.SSLv3,
    "TLS10": ssl.TLSVersion.TLSv1,
    "TLS11": ssl.TLSVersion.TLSv1_1,
    "TLS12": ssl.TLSVersion.TLSv1_2,
    "TLS13": ssl.TLSVersion.TLSv1_3,
}

WSGIApp = Callable[..., Any]


class InternalError(Exception):
    """Raised by the router when something went wrong."""

    def __init__(self, message: str = "internal server error") -> None:
        super().__init__(message)


class PrivateKeyError(Exception):
    """Raised when TLS is enabled but no private key is defined."""

    def __init__(self, message: str = "private key not defined") -> None:
        super().__init__(message)


class PublicKeyError(Exception):
    """Raised when TLS is enabled but no public key is defined."""

    def __init__(self, message: str = "public key not defined") -> None:
        super().__init__(message)


@dataclass
class TLSConfig:
    """The TLS section of the service configuration."""

    is_disabled: bool = False
    public_key: str = ""
    private_key: str = ""
    enable_mtls: bool = False
    min_version: str = ""
    max_version: str = ""
    curve_preferences: list[int] = field(default_factory=list)
    prefer_server_cipher_suites: bool = False
    cipher_suites: list[int] = field(default_factory=list)


@dataclass
class ServiceConfig:
    """The service settings the server needs. Timeouts are in seconds; 0 means none."""

    port: int = 0
    read_timeout: float = 0.0
    write_timeout: float = 0.0
    read_header_timeout: float = 0.0
    idle_timeout: float = 0.0
    tls: TLSConfig | None = None
    extra_config: dict[str, Any] = field(default_factory=dict)


def default_to_http_error(err: BaseException) -> int:
    """Translate any error into an internal server error status."""
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    _log.debug("translating %r into status %d", err, status.value)
    return status.value


def parse_tls_version(key: str) -> ssl.TLSVersion:
    """Return the TLS version named by key, TLS 1.3 when unknown."""
    return _VERSIONS.get(key, ssl.TLSVersion.TLSv1_3)


def parse_curve_ids(cfg: TLSConfig) -> list[int]:
    """Return the configured curve ids, or the defaults when none are set."""
    if not cfg.curve_preferences:
        return list(DEFAULT_CURVES)
    return [int(curve) for curve in cfg.curve_preferences]


def parse_cipher_suites(cfg: TLSConfig) -> list[int]:
    """Return the configured cipher suite ids, or the defaults when none are set."""
    if not cfg.cipher_suites:
        return list(DEFAULT_CIPHER_SUITES)
    return [int(suite) & 0xFFFF for suite in cfg.cipher_suites]


def _set_version(context: ssl.SSLContext, attribute: str, version: ssl.TLSVersion) -> None:
    try:
        setattr(context, attribute, version)
    except (ValueError, ssl.SSLError):
        _log.debug("unsupported TLS version %s for %s", version, attribute)


def parse_tls_config(cfg: TLSConfig | None) -> ssl.SSLContext | None:
    """Build a server SSL context from the TLS section, or None when TLS is off."""
    if cfg is None or cfg.is_disabled:
        return None

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    _set_version(context, "maximum_version", parse_tls_version(cfg.max_version))
    _set_version(context, "minimum_version", parse_tls_version(cfg.min_version))

    curves = [_CURVE_NAMES[c] for c in parse_curve_ids(cfg) if c in _CURVE_NAMES]
    if curves:
        try:
            context.set_ecdh_curve(curves[0])
        except (ValueError, ssl.SSLError):
            _log.debug("unsupported curve %s", curves[0])

    ciphers = [_CIPHER_NAMES[c] for c in parse_cipher_suites(cfg) if c in _CIPHER_NAMES]
    if ciphers:
        try:
            context.set_ciphers(":".join(ciphers))
        except ssl.SSLError:
            _log.debug("unsupported cipher suites %s", ciphers)

    if cfg.prefer_server_cipher_suites:
        context.options |= ssl.OP_CIPHER_SERVER_PREFERENCE

    if not cfg.enable_mtls:
        return context

    try:
        with open(cfg.public_key, encoding="utf-8", errors="replace") as handle:
            ca_cert = handle.read()
    except OSError:
        return context

    context.load_default_certs(ssl.Purpose.CLIENT_AUTH)
    try:
        context.load_verify_locations(cadata=ca_cert)
    except (ssl.SSLError, ValueError):
        _log.debug("no usable certificates in %s", cfg.public_key)
    context.verify_mode = ssl.CERT_REQUIRED
    return context


class _RequestHandler(WSGIRequestHandler):
    def setup(self) -> None:
        self.timeout = self.server.request_timeout
        super().setup()

    def log_message(self, format: str, *args: Any) -> None:
        _log.debug("%s - " + format, self.address_string(), *args)


class _Server(ThreadingMixIn, WSGIServer):
    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        tls_context: ssl.SSLContext | None,
        request_timeout: float | None,
    ) -> None:
        self.tls_context = tls_context
        self.request_timeout = request_timeout
        super().__init__(address, _RequestHandler)

    def finish_request(self, request: socket.socket, client_address: Any) -> None:
        if self.tls_context is None:
            super().finish_request(request, client_address)
            return
        request.settimeout(self.request_timeout)
        try:
            secured = self.tls_context.wrap_socket(request, server_side=True)
        except (ssl.SSLError, OSError) as exc:
            _log.debug("TLS handshake with %s failed: %s", client_address, exc)
            return
        try:
            super().finish_request(secured, client_address)
        finally:
            secured.close()

    def handle_error(self, request: Any, client_address: Any) -> None:
        _log.debug("error serving %s", client_address, exc_info=True)


def _request_timeout(cfg: ServiceConfig) -> float | None:
    timeouts = [t for t in (cfg.read_header_timeout, cfg.read_timeout, cfg.write_timeout) if t > 0]
    return min(timeouts) if timeouts else None


def new_server(cfg: ServiceConfig, handler: WSGIApp) -> _Server:
    """Return a bound server ready to serve the WSGI handler on the configured port."""
    server = _Server(("", cfg.port), parse_tls_config(cfg.tls), _request_timeout(cfg))
    server.set_app(handler)
    return server


def run_server(
    cfg: ServiceConfig,
    handler: WSGIApp,
    stop_event: threading.Event | None = None,
) -> None:
    """Serve the handler until stop_event is set, configuring TLS when required."""
    with new_server(cfg, handler) as server:
        if server.tls_context is not None:
            assert cfg.tls is not None
            if not cfg.tls.public_key:
                raise PublicKeyError()
            if not cfg.tls.private_key:
                raise PrivateKeyError()
            server.tls_context.load_cert_chain(cfg.tls.public_key, cfg.tls.private_key)

        failures: list[BaseException] = []

        def serve() -> None:
            try:
                server.serve_forever()
            except BaseException as exc:
                failures.append(exc)

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        stop = stop_event if stop_event is not None else threading.Event()
        try:
            while thread.is_alive() and not stop.wait(0.1):
                pass
        finally:
            server.shutdown()
            thread.join()
        if failures:
            raise failures[0]