"""
structlog 配置

API 与客户端共用。输出走标准库 logging 的根 handler（stderr），
所以 structlog 日志和 logging.getLogger() 的日志格式一致：
- LOG_FORMAT=json     每行一个 JSON 对象（默认）
- LOG_FORMAT=console  开发时的彩色输出
- LOG_LEVEL           默认 INFO
- LOG_TAGS            附加到每条日志的固定字段，如 "env=prod,region=cn"

WebSocket 会话内 bind_session_context() 之后，每条日志都带 session_id / user_id。
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import structlog


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


# 第三方库只保留警告以上
QUIET_LOGGERS = ("uvicorn.access", "aiohttp.access", "aiohttp.client", "psycopg2")


def _parse_tags(raw: str) -> Dict[str, str]:
    tags = {}
    for item in raw.split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            tags[key.strip()] = value.strip()
    return tags


@dataclass
class LogConfig:
    level: str = "INFO"
    format: LogFormat = LogFormat.JSON
    add_timestamp: bool = True
    service_name: str = "collab-api"
    extra_tags: dict = field(default_factory=dict)

    @classmethod
    def from_env(cls, service_name: str = "collab-api") -> "LogConfig":
        fmt = os.getenv("LOG_FORMAT", LogFormat.JSON.value).strip().lower()
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            format=LogFormat.CONSOLE if fmt == LogFormat.CONSOLE.value else LogFormat.JSON,
            service_name=service_name,
            extra_tags=_parse_tags(os.getenv("LOG_TAGS", "")),
        )


_current_config: Optional[LogConfig] = None


def _pre_chain(config: LogConfig) -> List:
    """structlog 与标准库日志共用的处理链（渲染之前）"""
    tags = {"service": config.service_name, **config.extra_tags}

    def add_tags(_, __, event_dict):
        for key, value in tags.items():
            event_dict.setdefault(key, value)
        return event_dict

    chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_tags,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if config.add_timestamp:
        chain.insert(0, structlog.processors.TimeStamper(fmt="iso"))
    return chain


def _renderer(config: LogConfig):
    if config.format == LogFormat.CONSOLE:
        return structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.processors.JSONRenderer(ensure_ascii=False)


def configure_logging(config: Optional[LogConfig] = None, service_name: str = "collab-api"):
    """
    配置 structlog 和根 logger；重复调用会替换之前的 handler

    Args:
        config: None 时从环境变量读取
        service_name: 写入每条日志的 service 字段
    """
    global _current_config
    config = config or LogConfig.from_env(service_name=service_name)
    _current_config = config
    level = getattr(logging, config.level, logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(config),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(config),
            foreign_pre_chain=_pre_chain(config),
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("uvicorn").setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_current_config() -> Optional[LogConfig]:
    return _current_config


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    事件名用 snake_case，其余信息放关键字参数:

        logger.info("note_created", note_id=note.id, candidate_id=note.candidate_id)
    """
    return structlog.get_logger(name)


def bind_request_context(request_id: str, user_id: Optional[str] = None):
    """HTTP 请求开始时调用，覆盖上一个请求残留的上下文"""
    structlog.contextvars.clear_contextvars()
    context = {"request_id": request_id}
    if user_id:
        context["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**context)


def bind_session_context(session_id: str, user_id: str):
    """WebSocket 会话上下文，连接期间有效"""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(session_id=session_id, user_id=user_id)


def clear_request_context():
    structlog.contextvars.clear_contextvars()
