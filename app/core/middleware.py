"""
中间件配置
"""

import time
import uuid
from typing import Callable
from fastapi import Request, Response, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from app.core.exceptions import LectureScribeException, lecturescribe_exception_to_http_exception
from app.core.logging import api_logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """请求日志中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # 生成请求ID
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()
        api_logger.info(
            f"Request started - {request.method} {request.url.path} [{request_id}]"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            api_logger.error(
                f"Request failed - {request.method} {request.url.path} "
                f"[{request_id}] after {process_time:.4f}s: {e}"
            )
            raise

        process_time = time.time() - start_time
        api_logger.info(
            f"Request completed - {request.method} {request.url.path} "
            f"[{request_id}] {response.status_code} in {process_time:.4f}s"
        )

        # 添加响应头
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time, 4))

        return response


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """异常处理中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            return await call_next(request)
        except LectureScribeException as exc:
            # 处理自定义异常
            http_exc = lecturescribe_exception_to_http_exception(exc)
            api_logger.error(
                f"{type(exc).__name__} [{exc.code}] on {request.url.path} "
                f"[{request_id}]: {exc.message}"
            )
            return JSONResponse(
                status_code=http_exc.status_code,
                content=http_exc.detail
            )
        except HTTPException as exc:
            api_logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")
            raise
        except Exception as exc:
            # 处理未预期的异常
            api_logger.opt(exception=exc).error(
                f"Unhandled exception on {request.url.path} [{request_id}]: {exc}"
            )
            return JSONResponse(
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": True,
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "Internal server error",
                    "request_id": request_id
                }
            )
