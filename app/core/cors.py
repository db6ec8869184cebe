"""
app/core/cors.py

CORS middleware that answers every OPTIONS request with 204 and an
empty body.

Starlette's CORSMiddleware replies to a valid preflight with
``200 OK`` plus a text body, and passes OPTIONS requests that lack the
preflight headers on to the router (which answers 405). Browsers and the
site's form scripts expect a bare 204 in both cases.
"""

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

_DROPPED_HEADERS = ("content-length", "content-type")


class PreflightCORSMiddleware(CORSMiddleware):

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            headers = Headers(scope=scope)
            if "origin" in headers and "access-control-request-method" in headers:
                response = self.preflight_response(request_headers=headers)
            else:
                response = Response(status_code=204)
            await response(scope, receive, send)
            return

        await super().__call__(scope, receive, send)

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers=request_headers)
        if response.status_code != 200:
            # Disallowed origin/method/header: keep Starlette's 400 explanation.
            return response

        headers = {k: v for k, v in response.headers.items() if k not in _DROPPED_HEADERS}
        return Response(status_code=204, headers=headers)
