"""Minimal ASGI application protected by the session endpoint.

Serve it with any ASGI server (``uvicorn example:app`` for instance) behind a
proxy that issues session cookies. Every request is verified against
``/.auth/me`` on the same host; override ``EASYAUTH_AUTH_ENDPOINT`` to point at a
different path or an absolute URL, and set ``EASYAUTH_ALLOW_ANONYMOUS=1`` to let
unauthenticated requests through.
"""

from __future__ import annotations

import os
from typing import Any

from easyauth import EasyAuthMiddleware, Identity, load_config
from easyauth.serialization import json_encode


def _settings() -> dict[str, Any]:
    """Collect settings from the environment using the PascalCase option names."""

    settings: dict[str, Any] = {}
    endpoint = os.getenv("EASYAUTH_AUTH_ENDPOINT")
    if endpoint:
        settings["AuthEndpoint"] = endpoint
    providers = os.getenv("EASYAUTH_ALLOWED_PROVIDERS")
    if providers:
        settings["AllowedProviders"] = [item.strip() for item in providers.split(",") if item.strip()]
    return settings


async def whoami(scope, receive, send) -> None:
    user = scope.get("user")
    if isinstance(user, Identity):
        payload: dict[str, Any] = {
            "authenticated": True,
            "provider": user.authentication_type,
            "name": user.name,
            "roles": list(user.roles),
        }
    else:
        payload = {"authenticated": False}
    body = json_encode(payload)
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"application/json"), (b"content-length", str(len(body)).encode())],
        }
    )
    await send({"type": "http.response.body", "body": body})


app = EasyAuthMiddleware(
    whoami,
    config=load_config(_settings()),
    allow_anonymous=os.getenv("EASYAUTH_ALLOW_ANONYMOUS") == "1",
)
