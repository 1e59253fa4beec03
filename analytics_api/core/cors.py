"""
CORS for browser SDKs.

SDKs run on arbitrary customer origins and send credentials, so the
request's Origin is echoed back instead of using a wildcard. Every OPTIONS
request is answered here with 204.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ALLOW_METHODS = "POST, GET, OPTIONS, PUT, DELETE, HEAD, PATCH"
ALLOW_HEADERS = (
    "Content-Type, Authorization, X-Requested-With, "
    "databuddy-client-id, databuddy-sdk-name, databuddy-sdk-version"
)


def cors_headers(origin: str) -> dict:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


class MirrorOriginCORSMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=cors_headers(origin) if origin else None)

        response = await call_next(request)
        if origin:
            response.headers.update(cors_headers(origin))
        return response
