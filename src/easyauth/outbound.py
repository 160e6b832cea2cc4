"""Outbound request construction for the session endpoint."""

from __future__ import annotations

from typing import Literal, Mapping
from urllib.parse import urlparse

import msgspec
from msgspec import Struct

from .requests import InboundContext

ZUMO_HEADER_PREFIX = "X-ZUMO-"


class SessionCookie(Struct, frozen=True):
    domain: str
    name: str
    value: str


class OutboundRequest(Struct, frozen=True):
    """A single GET against the session endpoint, carrying its own cookie jar."""

    url: str
    cookies: tuple[SessionCookie, ...] = ()
    headers: Mapping[str, str] = msgspec.field(default_factory=dict)
    method: Literal["GET"] = "GET"

    @property
    def host(self) -> str:
        return _origin_host(self.url)

    def cookie_header(self) -> str | None:
        """Render the jar cookies that apply to :attr:`url` as a ``Cookie`` value."""

        host = self.host
        applicable = [cookie for cookie in self.cookies if cookie.domain == host]
        if not applicable:
            return None
        return "; ".join(f"{cookie.name}={cookie.value}" for cookie in applicable)


def is_forwarded_header(name: str) -> bool:
    return name.upper().startswith(ZUMO_HEADER_PREFIX)


def build_outbound_request(context: InboundContext, url: str) -> OutboundRequest:
    """Build the request that replays ``context``'s session against ``url``.

    Every inbound cookie is forwarded. Only ``X-ZUMO-*`` headers survive, each
    with its first value.
    """

    domain = _origin_host(url)
    cookies = tuple(SessionCookie(domain=domain, name=name, value=value) for name, value in context.cookies)
    headers: dict[str, str] = {}
    for name, values in context.headers.items():
        if values and is_forwarded_header(name):
            headers[name] = values[0]
    return OutboundRequest(url=url, cookies=cookies, headers=headers)


def _origin_host(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    return (parsed.hostname or "").lower()


__all__ = [
    "ZUMO_HEADER_PREFIX",
    "OutboundRequest",
    "SessionCookie",
    "build_outbound_request",
    "is_forwarded_header",
]
