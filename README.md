# lura

Building blocks for an API gateway: service discovery subscribers, load
balancers, a small HTTP client with request executors and status handlers,
a threaded WSGI server runner with TLS and mutual TLS settings, and
registries for client and server plugins.

## Install

```
pip install .
pip install ".[test]"   # with the test requirements
```

The only runtime dependency is `dnspython`, used for DNS SRV lookups.

## Service discovery

`lura.sd.subscriber` defines the `Subscriber` interface, whose `hosts()`
returns the current list of hosts, and three ready-made pieces:

- `FixedSubscriber` – a list of hosts that never changes;
- `SubscriberFunc` – wraps a plain callable returning a list of hosts;
- `fixed_subscriber_factory(cfg)` – builds a `FixedSubscriber` from a
  `Backend`'s `host` list.

`Backend` is a dataclass with `host`, `sd`, `url_pattern`, `method` and
`extra_config`.

`lura.sd.register` keeps a process-wide `Register` of subscriber factories
keyed by name:

```python
from lura.sd.subscriber import Backend, SubscriberFunc
from lura.sd.register import register_subscriber_factory, get_subscriber, get_register

register_subscriber_factory("static", lambda cfg: SubscriberFunc(lambda: ["http://a:8080"]))
get_subscriber(Backend(sd="static")).hosts()          # ["http://a:8080"]

# Unknown names, or names bound to something that is not callable,
# fall back to the backend's fixed list of hosts.
get_subscriber(Backend(host=["http://b:8080"])).hosts()  # ["http://b:8080"]
get_register().get("missing")                            # fixed_subscriber_factory
```

### DNS SRV

`lura.sd.dnssrv` resolves SRV records into hosts of the form
`http://target:port` (IPv6 targets are bracketed).

- `register()` makes the `"dns"` name (`NAMESPACE`) available in the
  register; `subscriber_factory(cfg)` then uses the backend's first host as
  the name to look up.
- `new(name)` uses `default_lookup` and the module's `TTL` of 30 seconds.
- `new_detailed(name, lookup, ttl)` takes any callable
  `lookup(service, proto, name) -> (cname, [SRVRecord, ...])`.

A `DNSSubscriber` resolves once when created and again every `ttl` seconds
in a background daemon thread. A failed lookup keeps the previous hosts.
Each record is repeated according to its weight (a weight of 1 gives one
entry, 2 gives two). Call `close()`, or use it as a context manager, to stop
refreshing.

```python
from lura.sd.dnssrv import SRVRecord, new_detailed

def lookup(service, proto, name):
    return "cname", [SRVRecord(target="127.0.0.1", port=80, weight=1),
                     SRVRecord(target="127.0.0.1", port=81, weight=2)]

with new_detailed("some.example.tld", lookup, ttl=30.0) as subscriber:
    subscriber.hosts()
    # ["http://127.0.0.1:80", "http://127.0.0.1:81", "http://127.0.0.1:81"]
```

## Load balancing

`lura.sd.balancing` turns a subscriber into a `Balancer` whose `host()`
returns one host:

- `new_round_robin_lb(subscriber)` – a `RoundRobinBalancer` cycling in order;
- `new_random_lb(subscriber)` – a `RandomBalancer` picking at random;
- `new_balancer(subscriber)` – round robin when `os.cpu_count()` is 1,
  random otherwise.

A `FixedSubscriber` with exactly one host gets a `NopBalancer` that always
returns it. Balancers raise `NoHostsError` when the subscriber returns no
hosts, and let the subscriber's own exceptions through.

```python
from lura.sd.balancing import new_round_robin_lb
from lura.sd.subscriber import FixedSubscriber

balancer = new_round_robin_lb(FixedSubscriber(["http://a:8080", "http://b:8080"]))
balancer.host()  # "http://a:8080"
balancer.host()  # "http://b:8080"
```

## HTTP client

`lura.client.executor` provides `Request` and `Response` dataclasses and an
`HTTPClient` built on `urllib`. `HTTPClient.do(request)` returns a
`Response` for every status code, error statuses included; only network
failures raise. `new_http_client()` returns a shared client, and
`default_http_request_executor(client_factory)` builds a callable that sends
a `Request` with a client from the factory.

```python
from lura.client.executor import Request, default_http_request_executor, new_http_client

execute = default_http_request_executor(new_http_client)
response = execute(Request(url="http://localhost:8080/"))
response.status_code, response.body
```

### Status handling

`lura.client.status` decides what a backend response means:

- `default_http_status_handler(resp)` returns the response for 200 and 201
  and raises `InvalidStatusCodeError` otherwise;
- `noop_http_status_handler(resp)` returns every response;
- `detailed_http_status_handler(next_handler, name)` turns any exception
  from `next_handler` into an `HTTPResponseError` carrying `status_code`,
  the decoded body as `message`, `name` and the `response`;
  `to_dict()` gives `{"http_status_code": ..., "http_body": ...}`, leaving
  out an empty body;
- `get_http_status_handler(backend)` returns the detailed handler when
  `backend.extra_config[NAMESPACE]["return_error_details"]` is a non-empty
  string (used as the error name), and the default handler otherwise.

## Server

`lura.server.server` serves a WSGI application:

- `new_server(cfg, handler)` returns a bound, threaded WSGI server on
  `cfg.port` (all interfaces);
- `run_server(cfg, handler, stop_event=None)` serves until `stop_event` is
  set, then shuts down and returns. When `cfg.tls` is set and not disabled,
  it raises `PublicKeyError` or `PrivateKeyError` if a key file path is
  missing, and loads the certificate chain from `public_key` and
  `private_key` otherwise.

`ServiceConfig` holds the port, timeouts in seconds (the smallest non-zero
of the read, header and write timeouts applies to each connection) and an
optional `TLSConfig`. `parse_tls_config(tls)` builds the `ssl.SSLContext`:

- `parse_tls_version(key)` maps `"SSL3.0"`, `"TLS10"`, `"TLS11"`,
  `"TLS12"`, `"TLS13"` to `ssl.TLSVersion`, defaulting to TLS 1.3 for
  anything else (so both the minimum and maximum version default to 1.3);
- `parse_curve_ids(tls)` and `parse_cipher_suites(tls)` return the
  configured ids or `DEFAULT_CURVES` / `DEFAULT_CIPHER_SUITES`;
- with `enable_mtls`, the file at `public_key` is added to the default CA
  store and client certificates are required.

`default_to_http_error(err)` maps any error to 500.

```python
import threading
from lura.server.server import ServiceConfig, run_server

def app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"hello"]

stop = threading.Event()
threading.Thread(target=run_server, args=(ServiceConfig(port=8080), app, stop)).start()
# ... later
stop.set()
```

## Plugins

Both plugin modules keep a registry of named factories and a `load`
function. `load(registerers, rcf, logger=None)` calls each object's
`register_clients(rcf)` (client plugins) or `register_handlers(rcf)`
(server plugins), and its `register_logger(logger)` first when it has one
and a logger is given. It returns the number of registerers that
succeeded, or raises `LoaderError` whose `errors` list every failure and
whose `loaded` holds the success count.

### Client plugins

`lura.client.plugin.register_client(name, factory)` registers a factory
that takes the backend's extra config dict and returns a callable from
`Request` to `Response`. `http_request_executor(logger, next_factory)`
wraps an executor factory: a `Backend` whose
`extra_config[NAMESPACE]["name"]` names a registered plugin gets that
plugin's handler; in every other case, including a factory that raises,
`next_factory(backend)` is used.

### Server plugins

`lura.server.plugin.register_handler(name, factory)` registers a factory
taking `(extra, handler)` and returning a new WSGI application.
`new(logger, next_run)` wraps a runner such as `run_server`: the
`"name"` in `cfg.extra_config[NAMESPACE]` may be one name or a list of
names, applied in order, each wrapping the handler produced so far. If a
name is unknown, not callable, or its factory raises, `next_run` is called
with the handler as it stood at that point.

## What this package does not do

- It has no command-line program; everything is used from Python.
- It does not find or load plugin files from disk: `load` takes registerer
  objects you have already imported.
- It contains no router, endpoint configuration or proxy pipeline; the
  server runs whatever WSGI application you pass it.