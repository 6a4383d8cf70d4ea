"""
路由异常处理

ApplicationError 按 category 映射 HTTP 状态码，响应体统一为 ErrorResponse。
未登录 (UnauthorizedError) 额外带 redirect，前端据此跳转登录页。
"""

import json

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas.common import ErrorResponse
from domains.core import ApplicationError, UnauthorizedError
from domains.infra.logging import get_logger

logger = get_logger(__name__)


def error_content(exc: ApplicationError) -> dict:
    response = ErrorResponse(
        error=exc.message,
        code=exc.code,
        details=exc.details or {},
        redirect=exc.redirect if isinstance(exc, UnauthorizedError) else None,
    )
    return response.to_content()


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ApplicationError)
    async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
        logger.warning(
            "application_error",
            code=exc.code,
            category=exc.category.value,
            message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.http_status_code, content=error_content(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # errors() 里可能带不可序列化的 ctx
        errors = json.loads(json.dumps(exc.errors(), default=str))
        response = ErrorResponse(
            error="请求参数无效",
            code="VALIDATION_ERROR",
            details={"validation_errors": errors},
        )
        return JSONResponse(status_code=422, content=response.to_content())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )
        response = ErrorResponse(error=f"Internal server error: {type(exc).__name__}", code="INTERNAL_ERROR")
        return JSONResponse(status_code=500, content=response.to_content())


__all__ = [
    "error_content",
    "register_exception_handlers",
]
