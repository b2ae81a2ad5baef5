"""Registry of Trac clients, keyed by case-insensitive instance name."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from ..exceptions import ConfigurationError
from .trac import TracClient


class TracRegistry(Mapping):
    """Immutable mapping of instance name to TracClient.

    Built once at startup and handed to the router. Lookups ignore case.
    """

    def __init__(self, clients: Mapping[str, TracClient]):
        normalized: dict[str, TracClient] = {}
        for name, client in clients.items():
            key = name.lower()
            if key in normalized:
                raise ConfigurationError(f"Conflicting Trac name for {name}")
            normalized[key] = client

        self._clients = MappingProxyType(normalized)

    def __getitem__(self, name: str) -> TracClient:
        return self._clients[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._clients

    def __iter__(self) -> Iterator[str]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)
