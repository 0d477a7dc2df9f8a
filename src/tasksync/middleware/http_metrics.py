"""HTTP metrics + access log middleware.

Records request count and latency per route template (not raw path, to
keep label cardinality bounded) and writes one `http.request` log line.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from tasksync.observability.metrics import observe_request

logger = structlog.get_logger()


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class HttpMetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            observe_request(request.method, _route_template(request), 500, duration)
            logger.exception("http.request_failed", duration_ms=round(duration * 1000, 2))
            raise

        duration = time.perf_counter() - start
        route = _route_template(request)
        observe_request(request.method, route, response.status_code, duration)
        logger.info(
            "http.request",
            route=route,
            status=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response
