"""
Middleware para coletar métricas HTTP com Prometheus.

Registra método, endpoint normalizado, classe de status e duração
de cada requisição às rotas da API.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from services.metrics import record_http_request


class HTTPMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware para coletar métricas HTTP automaticamente."""

    # Rotas de infraestrutura ficam fora das métricas
    IGNORED_PATHS = {
        "/metrics",
        "/health",
        "/docs",
        "/openapi.json",
        "/favicon.ico",
    }

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.IGNORED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=status_code,
                duration_seconds=time.perf_counter() - start_time
            )

        return response
