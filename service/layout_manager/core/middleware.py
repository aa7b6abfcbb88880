# -*- coding: utf-8 -*-
"""请求 ID 与布局变更审计日志中间件"""
import logging
import time
import uuid
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from layout_manager.core.config import settings

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class RequestIDAndAuditMiddleware(BaseHTTPMiddleware):
    """
    - 每个请求沿用或生成 X-Request-ID，并回写到响应头
    - 审计前缀（默认 /admin 与 /mcp）下的变更请求记录方法、路径、状态码与耗时
    """

    def __init__(self, app, audit_prefixes: Optional[Iterable[str]] = None):
        super().__init__(app)
        prefixes = settings.AUDIT_PATH_PREFIXES if audit_prefixes is None else audit_prefixes
        self.audit_prefixes = tuple(prefixes)

    def should_audit(self, request: Request) -> bool:
        if request.method not in MUTATING_METHODS or not self.audit_prefixes:
            return False
        return request.url.path.startswith(self.audit_prefixes)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if self.should_audit(request):
            logger.info(
                "audit request_id=%s method=%s path=%s status=%s elapsed_ms=%.1f",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
        return response
