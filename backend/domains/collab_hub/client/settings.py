"""
客户端配置（基于 pydantic-settings）

环境变量前缀 COLLAB_CLIENT_，例如 COLLAB_CLIENT_BASE_URL。
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.suggestions import DEFAULT_SUGGESTION_LIMIT


class ClientSettings(BaseSettings):
    """协作客户端配置"""
    model_config = SettingsConfigDict(
        env_prefix="COLLAB_CLIENT_",
        extra="ignore",
    )

    base_url: str = Field(default="http://localhost:8000", description="服务地址")
    api_prefix: str = Field(default="/api/v1", description="API 前缀")
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP 请求超时（秒）")
    reconnect_attempts: int = Field(default=5, ge=0, description="断线重连次数")
    reconnect_delay: float = Field(default=1.0, ge=0, description="重连间隔（秒，固定）")
    suggestion_limit: int = Field(default=DEFAULT_SUGGESTION_LIMIT, ge=1, description="建议列表上限")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def api_url(self) -> str:
        return f"{self.base_url}{self.api_prefix}"

    @property
    def ws_url(self) -> str:
        if self.base_url.startswith("https://"):
            base = "wss://" + self.base_url[len("https://"):]
        elif self.base_url.startswith("http://"):
            base = "ws://" + self.base_url[len("http://"):]
        else:
            base = self.base_url
        return f"{base}{self.api_prefix}/ws"


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()
