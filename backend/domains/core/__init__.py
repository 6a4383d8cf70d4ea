"""
与具体领域无关的公共部分：错误类型、服务注册表。

API 层和客户端都从这里取异常；服务实例统一经 ServiceRegistry 获取，
测试里先 registry.set() 注入替身，再调用 register_core_services()。
"""

from .exceptions import (
    HTTP_STATUS,
    ApplicationError,
    BusinessError,
    ConfigurationError,
    ErrorCategory,
    NotFoundError,
    Outcome,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .lifecycle import (
    ServiceDefinition,
    ServiceRegistry,
    get_service_registry,
    register_core_services,
    reset_service_registry,
)

__all__ = [
    "HTTP_STATUS",
    "ApplicationError",
    "BusinessError",
    "ConfigurationError",
    "ErrorCategory",
    "NotFoundError",
    "Outcome",
    "TransportError",
    "UnauthorizedError",
    "ValidationError",
    "ServiceDefinition",
    "ServiceRegistry",
    "get_service_registry",
    "register_core_services",
    "reset_service_registry",
]
