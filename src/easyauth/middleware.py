"""ASGI middleware that authenticates requests against the session endpoint."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping, MutableMapping

from .config import EasyAuthConfig
from .exceptions import HTTPError
from .requests import InboundContext
from .verifier import SessionVerifier, VerificationFailure

Scope = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Mapping[str, Any]]]
Send = Callable[[Mapping[str, Any]], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class EasyAuthMiddleware:
    """Populate ``scope["user"]`` and ``scope["auth"]`` for HTTP requests.

    Failed verification answers ``401`` unless ``allow_anonymous`` is set, in
    which case the request continues with ``scope["user"] = None``.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        config: EasyAuthConfig | None = None,
        verifier: SessionVerifier | None = None,
        allow_anonymous: bool = False,
    ) -> None:
        self.app = app
        self.config = config or EasyAuthConfig()
        self.verifier = verifier or SessionVerifier.from_config(self.config)
        self.allow_anonymous = allow_anonymous

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return
        context = InboundContext.from_asgi_scope(scope)
        result = await self.verifier.verify(context, self.config)
        scope["auth"] = result
        if isinstance(result, VerificationFailure):
            if not self.allow_anonymous:
                await _send_unauthorized(send, result)
                return
            scope["user"] = None
        else:
            scope["user"] = result.identity
        await self.app(scope, receive, send)


async def _send_unauthorized(send: Send, failure: VerificationFailure) -> None:
    body = HTTPError(401, failure.message).to_response_body()
    await send(
        {
            "type": "http.response.start",
            "status": 401,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode("latin-1")),
                (b"www-authenticate", b"EasyAuth"),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body, "more_body": False})


__all__ = ["EasyAuthMiddleware"]
