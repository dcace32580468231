import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.constants import PAYMENT_LOGGER_NAME

logger = logging.getLogger(__name__)
payment_logger = logging.getLogger(PAYMENT_LOGGER_NAME)

GATEWAY_CALLBACK_PATHS = ("/payments/ipn",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome.

    Gateway callbacks are also recorded on the payment logger so every IPN
    delivery shows up in payments.log, including rejected ones.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        line = f"[{request_id}] {request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"{line} - ERROR", extra={"request_id": request_id, "error": str(exc)})
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        status_code = response.status_code
        logger.log(
            logging.WARNING if status_code >= 400 else logging.INFO,
            f"{line} - {status_code} ({duration_ms}ms)",
            extra={"request_id": request_id, "status_code": status_code, "duration_ms": duration_ms},
        )
        if request.url.path.endswith(GATEWAY_CALLBACK_PATHS):
            payment_logger.info(
                f"Gateway callback answered {status_code}",
                extra={"event": "ipn_delivery", "request_id": request_id},
            )

        response.headers["X-Request-ID"] = request_id
        return response
