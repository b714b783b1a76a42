import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from creatorsubs.core.logging import LOGGER_NAME, bind_request_id, latency_bucket_ms

logger = logging.getLogger(LOGGER_NAME)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id (incoming header or fresh uuid) and echo it back."""

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or uuid4().hex
        request.state.request_id = rid

        started = time.perf_counter()
        with bind_request_id(rid):
            response = await call_next(request)
            response.headers[self.header_name] = rid
            logger.info(
                "request.complete",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "user_id": getattr(request.state, "user_id", None),
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
                },
            )
        return response
