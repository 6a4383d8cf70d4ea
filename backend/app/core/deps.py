"""Dependency injection for FastAPI routes.

服务统一由 ServiceRegistry 管理，测试时可以用 registry.set() 替换。
"""

from typing import Annotated, Optional

from fastapi import Depends, Path
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.async_utils import run_sync
from app.core.config import settings
from domains.collab_hub.core.models import Candidate, User
from domains.core import NotFoundError, UnauthorizedError, get_service_registry, register_core_services


# ============================================================================
# 初始化服务注册表
# ============================================================================

def _seed_file():
    seed = settings.SEED_FILE
    if seed is not None and seed.exists():
        return seed
    return None


def ensure_services_registered():
    """确保服务已注册（已注册或已注入时不重复注册）"""
    registry = get_service_registry()
    if not registry.registered_services:
        register_core_services(
            backend=settings.STORE_BACKEND,
            database_url=settings.DATABASE_URL,
            seed_file=_seed_file(),
        )
    return registry


# ============================================================================
# Service getters
# ============================================================================

def get_candidate_store():
    return ensure_services_registered().get("candidate_store")


def get_user_directory():
    return ensure_services_registered().get("user_directory")


def get_broadcaster():
    return ensure_services_registered().get("broadcaster")


def get_note_service():
    """Get NoteService singleton instance."""
    return ensure_services_registered().get("note_service")


def get_notification_service():
    """Get NotificationService singleton instance."""
    return ensure_services_registered().get("notification_service")


# ============================================================================
# Authentication
# ============================================================================

_bearer = HTTPBearer(auto_error=False)


async def authenticate_token(token: Optional[str]) -> Optional[User]:
    """用 token 在用户目录中查找用户，HTTP 与 WebSocket 共用"""
    if not token:
        return None
    directory = get_user_directory()
    return await run_sync(directory.authenticate, token)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer)],
) -> User:
    """
    当前登录用户

    缺少或无效的 Bearer token 返回 401，并在响应中给出登录页地址。
    """
    if credentials is None:
        raise UnauthorizedError(redirect=settings.LOGIN_REDIRECT)

    user = await authenticate_token(credentials.credentials)
    if user is None:
        raise UnauthorizedError(message="登录凭证无效，请重新登录", redirect=settings.LOGIN_REDIRECT)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


# ============================================================================
# Resource existence validators
# ============================================================================

async def get_candidate_or_404(
    candidate_id: Annotated[str, Path(description="候选人ID")],
    store=Depends(get_candidate_store),
) -> Candidate:
    """
    验证候选人存在并返回。

    用作路由依赖注入，自动处理 404 错误。
    """
    candidate = await run_sync(store.get, candidate_id)
    if candidate is None:
        raise NotFoundError("候选人", candidate_id)
    return candidate
