"""Service discovery, load balancing, HTTP transport helpers and plugin registries."""

__version__ = "0.1.0"