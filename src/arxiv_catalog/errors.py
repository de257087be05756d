"""Error taxonomy shared by the parser, query builder, services and store."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for every error the catalog core surfaces to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidQuery(CatalogError):
    """The caller's intent has no usable constraint; never reaches the network."""


class NetworkError(CatalogError):
    """HTTP or transport failure while talking to the feed."""

    def __init__(self, *, status_code: int | None = None, message: str = "") -> None:
        if not message:
            message = f"HTTP {status_code}" if status_code is not None else "network error"
        super().__init__(message)
        self.status_code = status_code


class ParseError(CatalogError):
    """The feed payload is not well-formed Atom XML."""


class StoreError(CatalogError):
    """The persistent paper store failed."""


class TransportError(Exception):
    """Raised by a FetchClient when no HTTP response could be obtained."""


__all__ = [
    "CatalogError",
    "InvalidQuery",
    "NetworkError",
    "ParseError",
    "StoreError",
    "TransportError",
]
