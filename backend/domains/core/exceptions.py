"""
协作服务的错误类型

HTTP 路由和 WebSocket 通道共用一套错误：
- HTTP: ErrorCategory -> 状态码，响应体 {"success": false, "error", "code", "details"}
- WebSocket: {"type": "error", "code", "message"} 事件，连接不断开
- 客户端: 把服务端响应还原成同一套异常

重复加入房间、重复标记已读这类幂等写操作不算错误，
返回 Outcome.CONFLICT_IGNORED，调用方按成功处理。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    BUSINESS = "business"
    EXTERNAL = "external"      # 服务端不可达 / 传输层
    INTERNAL = "internal"


HTTP_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.UNAUTHORIZED: 401,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.BUSINESS: 422,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.EXTERNAL: 502,
}


class Outcome(str, Enum):
    """幂等写操作的结果"""
    APPLIED = "applied"
    CONFLICT_IGNORED = "conflict_ignored"

    @property
    def changed(self) -> bool:
        return self is Outcome.APPLIED


@dataclass
class ApplicationError(Exception):
    """
    所有业务异常的基类

    Example:
        raise NotFoundError("候选人", "c1")
        raise ValidationError("笔记内容不能为空", field="raw_text")
    """
    code: str
    message: str
    category: ErrorCategory = ErrorCategory.INTERNAL
    details: Optional[Dict[str, Any]] = None
    cause: Optional[Exception] = None

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def http_status_code(self) -> int:
        return HTTP_STATUS.get(self.category, 500)

    @property
    def retryable(self) -> bool:
        """只有传输层错误值得重试；凭证错误重试也没用"""
        return self.category == ErrorCategory.EXTERNAL


class NotFoundError(ApplicationError):
    def __init__(
        self,
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict] = None,
        message: Optional[str] = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            code="NOT_FOUND",
            message=message or f"{resource_type}不存在: {resource_id}",
            category=ErrorCategory.NOT_FOUND,
            details=details or {"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class ValidationError(ApplicationError):
    """请求或消息格式不合法；errors 为逐字段的校验明细"""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
    ):
        self.errors = errors
        self.field = field
        details = {key: value for key, value in (("validation_errors", errors), ("field", field)) if value}
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details or None,
        )


class UnauthorizedError(ApplicationError):
    """未登录或凭证失效；前端按 redirect 跳转登录页"""

    def __init__(self, message: Optional[str] = None, redirect: str = "/login"):
        self.redirect = redirect
        super().__init__(
            code="UNAUTHORIZED",
            message=message or "登录已失效，请重新登录",
            category=ErrorCategory.UNAUTHORIZED,
            details={"redirect": redirect},
        )


class TransportError(ApplicationError):
    """服务端不可达：连接失败、超时、握手被拒（非 401）"""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[Dict] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            code="TRANSPORT_ERROR",
            message=f"{service_name}: {message}",
            category=ErrorCategory.EXTERNAL,
            details=details or {"service": service_name},
            cause=cause,
        )


class BusinessError(ApplicationError):
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(code=code, message=message, category=ErrorCategory.BUSINESS, details=details, cause=cause)


class ConfigurationError(ApplicationError):
    def __init__(self, config_key: str, message: str):
        super().__init__(
            code="CONFIGURATION_ERROR",
            message=f"配置错误 [{config_key}]: {message}",
            category=ErrorCategory.INTERNAL,
            details={"config_key": config_key},
        )


__all__ = [
    "ErrorCategory",
    "HTTP_STATUS",
    "Outcome",
    "ApplicationError",
    "NotFoundError",
    "ValidationError",
    "UnauthorizedError",
    "TransportError",
    "BusinessError",
    "ConfigurationError",
]
