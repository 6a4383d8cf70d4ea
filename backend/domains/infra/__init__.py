"""
Infra - 基础设施

- logging: structlog 结构化日志
- store: PostgreSQL 存储层基类
"""
