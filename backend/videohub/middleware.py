import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Логирует каждый HTTP запрос и ответ со временем обработки"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        method = request.method
        path = request.url.path
        client_host = request.client.host if request.client else "unknown"

        log_msg = f"→ {method} {path}"
        # multipart тела не логируем, только query
        if request.query_params:
            log_msg += f" | Query: {dict(request.query_params)}"
        log_msg += f" | Client: {client_host}"
        logger.info(log_msg)

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(f"✗ {method} {path} | Error: {str(e)} | Time: {process_time:.3f}s", exc_info=True)
            raise

        process_time = time.time() - start_time
        status_code = response.status_code
        log_level = logging.INFO
        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        logger.log(log_level, f"← {method} {path} | Status: {status_code} | Time: {process_time:.3f}s")

        response.headers["X-Process-Time"] = str(process_time)
        return response
