"""
协作 API 入口

HTTP 路由与 WebSocket 通道共用一个 FastAPI 应用：
- /api/v1/...    REST 接口（Bearer token）
- /api/v1/ws     实时通道（?token=）
- /health        存活检查，附带实时连接统计
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.config import Settings, settings as default_settings
from app.core.events import create_start_handler, create_stop_handler
from app.core.exceptions import register_exception_handlers
from app.routes.v1.router import api_router
from app.routes.v1.ws import manager
from domains.core import get_service_registry
from domains.infra.logging import bind_request_context, clear_request_context, configure_logging, get_logger

configure_logging(service_name="collab-api")
logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    HTTP 访问日志

    沿用调用方传入的 X-Request-ID（没有时生成），并写回响应头，
    方便把客户端报错和服务端日志对上。WebSocket 不经过这里。
    """

    QUIET_PATHS = ("/health", "/docs", "/redoc", "/favicon.ico")

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path.startswith(self.QUIET_PATHS) or path.endswith("/openapi.json"):
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        bind_request_context(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "http_request_error",
                method=request.method,
                path=path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        else:
            level = "warning" if response.status_code >= 500 else "info"
            getattr(logger, level)(
                "http_request",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_start_handler()()
    yield
    await create_stop_handler()()


def create_application(config: Settings = default_settings) -> FastAPI:
    """组装应用：中间件、路由、异常处理、健康检查"""
    app = FastAPI(
        title=config.PROJECT_NAME,
        description="候选人协作笔记 API：提及、房间广播与通知",
        version=config.VERSION,
        openapi_url=f"{config.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # 后添加的中间件先执行：访问日志包在 CORS 外层
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(AccessLogMiddleware)

    app.include_router(api_router, prefix=config.API_V1_STR)
    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        broadcaster = get_service_registry().get_optional("broadcaster")
        return {
            "status": "healthy",
            "version": config.VERSION,
            "store_backend": config.STORE_BACKEND,
            "connections": manager.connection_count,
            "rooms": broadcaster.room_count if broadcaster is not None else 0,
        }

    return app


app = create_application()
