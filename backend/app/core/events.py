"""API 启动 / 关闭钩子

服务注册与释放都交给 ServiceRegistry；这里只负责预热和日志。
"""

from typing import Callable

from app.core.config import settings
from app.core.deps import ensure_services_registered
from domains.core import ConfigurationError, get_service_registry
from domains.infra.logging import get_logger

logger = get_logger(__name__)


def create_start_handler() -> Callable:

    async def start_app() -> None:
        logger.info("api_starting", component="api", store_backend=settings.STORE_BACKEND)

        try:
            registry = ensure_services_registered()
        except ConfigurationError as e:
            logger.error("service_registration_error", component="registry", error=e.message)
            raise

        # 存储不可用时 API 仍然启动，请求级别再报错
        try:
            registry.get("broadcaster")
            registry.get("note_service")
            directory = registry.get("user_directory")
            logger.info(
                "directory_loaded",
                component="user_directory",
                mentionable_users=len(directory.list_mentionable_users()),
            )
            logger.info(
                "services_initialized",
                component="registry",
                services=registry.initialized_services,
            )
        except Exception as e:
            logger.error("service_initialization_error", component="registry", error=str(e))

        logger.info("api_started", component="api")

    return start_app


def create_stop_handler() -> Callable:

    async def stop_app() -> None:
        logger.info("api_stopping", component="api")

        # broadcaster 先于存储关闭：注册顺序的逆序
        try:
            await get_service_registry().shutdown()
        except Exception as e:
            logger.warning("service_registry_stop_error", component="registry", error=str(e))

        logger.info("api_stopped", component="api")

    return stop_app
