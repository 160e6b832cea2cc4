"""Request primitives."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping


class InboundContext:
    """Immutable view of the request that triggered verification."""

    __slots__ = ("cookies", "headers", "host", "scheme")

    def __init__(
        self,
        *,
        scheme: str,
        host: str,
        cookies: Iterable[tuple[str, str]] | Mapping[str, str] | None = None,
        headers: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] | None = None,
    ) -> None:
        if isinstance(cookies, Mapping):
            cookie_pairs = tuple((str(name), str(value)) for name, value in cookies.items())
        else:
            cookie_pairs = tuple((str(name), str(value)) for name, value in (cookies or ()))
        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "host", host)
        object.__setattr__(self, "cookies", cookie_pairs)
        object.__setattr__(self, "headers", MappingProxyType(_collect_headers(headers)))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        return f"InboundContext(scheme={self.scheme!r}, host={self.host!r}, cookies={len(self.cookies)})"

    @classmethod
    def from_asgi_scope(cls, scope: Mapping[str, Any]) -> "InboundContext":
        """Snapshot an ASGI HTTP ``scope``."""

        raw_headers = [
            (key.decode("latin-1"), value.decode("latin-1")) for key, value in scope.get("headers", [])
        ]
        host = next((value for key, value in raw_headers if key.lower() == "host"), None)
        if host is None:
            server = scope.get("server")
            if server:
                server_host, port = server
                host = server_host if port is None else f"{server_host}:{port}"
            else:
                host = ""
        cookies: list[tuple[str, str]] = []
        for key, value in raw_headers:
            if key.lower() == "cookie":
                cookies.extend(parse_cookie_header(value))
        return cls(
            scheme=scope.get("scheme") or "http",
            host=host,
            cookies=cookies,
            headers=raw_headers,
        )

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of header ``name`` (case-insensitive)."""

        lowered = name.lower()
        for key, values in self.headers.items():
            if key.lower() == lowered and values:
                return values[0]
        return default

    def cookie(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.cookies:
            if key == name:
                return value
        return default


def parse_cookie_header(raw: str) -> list[tuple[str, str]]:
    """Split a ``Cookie`` header into ordered ``(name, value)`` pairs."""

    pairs: list[tuple[str, str]] = []
    for chunk in raw.split(";"):
        name, sep, value = chunk.strip().partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        pairs.append((name, value))
    return pairs


def _collect_headers(
    headers: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] | None,
) -> dict[str, tuple[str, ...]]:
    collected: dict[str, list[str]] = {}
    if headers is None:
        return {}
    if isinstance(headers, Mapping):
        for name, values in headers.items():
            if isinstance(values, str):
                collected.setdefault(name, []).append(values)
            else:
                collected.setdefault(name, []).extend(values)
    else:
        for name, value in headers:
            collected.setdefault(name, []).append(value)
    return {name: tuple(values) for name, values in collected.items()}


__all__ = ["InboundContext", "parse_cookie_header"]
