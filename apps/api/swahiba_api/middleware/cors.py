"""CORS for the browser clients.

Starlette answers a successful preflight with 200 and a plain-text body;
browsers and the hosted clients expect an empty 204 here.
"""

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

ALLOWED_METHODS = ["POST", "OPTIONS"]
ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose accepted preflights return 204 No Content."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)
