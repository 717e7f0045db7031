"""
api/security.py -- Security headers applied to every response.

SecurityHeadersMiddleware is a plain ASGI middleware rather than a route
decorator, so no route can opt out: it rewrites the http.response.start
message of every response that passes through it, including 4xx responses
produced by exception handlers.

Responses produced by the outermost ServerErrorMiddleware (unhandled 500s)
never pass through user middleware, so api.main's catch-all handler calls
apply_security_headers() itself.
"""

from __future__ import annotations

from starlette.datastructures import MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send


def security_headers(csp: str) -> dict[str, str]:
    return {
        "X-Frame-Options": "SAMEORIGIN",
        "X-XSS-Protection": "1; mode=block",
        "X-Content-Type-Options": "nosniff",
        "Content-Security-Policy": csp,
    }


def apply_security_headers(response: Response, csp: str) -> Response:
    for name, value in security_headers(csp).items():
        response.headers[name] = value
    return response


class SecurityHeadersMiddleware:
    def __init__(self, app: ASGIApp, csp: str) -> None:
        self.app = app
        self.headers = security_headers(csp)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)
