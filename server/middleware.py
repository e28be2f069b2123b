"""ASGI middleware attaching a request id to every HTTP request."""

import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "x-request-id"


class RequestIDMiddleware:
    """
    Reuse the caller's X-Request-ID or mint one, expose it as
    `request.state.request_id` and echo it on the response.

    Written as plain ASGI so streamed responses pass through untouched.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        incoming = headers.get(REQUEST_ID_HEADER.encode("latin-1"), b"").decode("latin-1").strip()
        request_id = incoming or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (REQUEST_ID_HEADER.encode("latin-1"), request_id.encode("latin-1"))
                ]
            await send(message)

        await self.app(scope, receive, send_with_request_id)
