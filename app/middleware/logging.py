import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Answer autosave fires on every keystroke pause; keep it out of INFO.
QUIET_SUFFIXES = ("/answers", "/session")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome and duration.

    An id supplied by the caller (a proxy or the frontend) is reused so
    client and server logs can be correlated.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        line = f"[{request_id}] {request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{line} failed after {self._elapsed_ms(started)}ms")
            raise

        elapsed_ms = self._elapsed_ms(started)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        elif request.url.path.endswith(QUIET_SUFFIXES):
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(level, f"{line} -> {response.status_code} ({elapsed_ms}ms)", extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
        })

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
