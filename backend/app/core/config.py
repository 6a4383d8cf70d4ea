"""
API 配置

从环境变量 / .env 读取，大小写敏感。存储后端：
- memory:   进程内存储，可选加载 SEED_FILE 演示数据
- postgres: 需要 DATABASE_URL
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Candidate Collab API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    STORE_BACKEND: str = "memory"
    DATABASE_URL: Optional[str] = None
    # 文件不存在时忽略
    SEED_FILE: Optional[Path] = PROJECT_ROOT / "config" / "seed_demo.json"

    SUGGESTION_LIMIT: int = 8
    LOGIN_REDIRECT: str = "/login"

    @field_validator("STORE_BACKEND", mode="before")
    @classmethod
    def _normalize_backend(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("SUGGESTION_LIMIT")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SUGGESTION_LIMIT must be >= 1")
        return value

    @model_validator(mode="after")
    def _postgres_needs_url(self) -> "Settings":
        if self.STORE_BACKEND == "postgres" and not self.DATABASE_URL:
            raise ValueError("STORE_BACKEND=postgres requires DATABASE_URL")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
