"""
服务注册表

存储、broadcaster、业务服务都登记在全局 ServiceRegistry 上：
- 首次 get() 时才创建，依赖先行
- shutdown() 按创建的逆序释放（broadcaster 先于存储）
- 测试先 set() 注入替身，register_core_services() 不会覆盖

    registry = register_core_services(backend="memory", seed_file="config/seed_demo.json")
    note_service = registry.get("note_service")
    ...
    await registry.shutdown()
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_BACKENDS = ("memory", "postgres")
STORE_NAMES = ("candidate_store", "user_directory", "note_store", "notification_store")


@dataclass
class ServiceDefinition:
    name: str
    factory: Callable[[], Any]
    instance: Any | None = None
    dependencies: list[str] = field(default_factory=list)
    # 普通函数或协程函数；为 None 时调用实例的 close()
    cleanup: Callable[[Any], Any] | None = None
    initialized: bool = False


class ServiceRegistry:

    def __init__(self):
        self._services: dict[str, ServiceDefinition] = {}
        self._init_order: list[str] = []
        self._resolving: set[str] = set()
        # get() 可能同时从 event loop 和 to_thread 的工作线程进入
        self._lock = threading.RLock()

    def register(
        self,
        name: str,
        factory: Callable[[], T],
        dependencies: list[str] | None = None,
        cleanup: Callable[[T], Any] | None = None,
    ) -> "ServiceRegistry":
        if name in self._services:
            logger.warning(f"服务 {name} 重复注册，覆盖旧定义")
        self._services[name] = ServiceDefinition(
            name=name,
            factory=factory,
            dependencies=list(dependencies or ()),
            cleanup=cleanup,
        )
        return self

    def get(self, name: str) -> Any:
        """
        获取服务实例，必要时先创建其依赖

        Raises:
            KeyError: 服务未注册
            RuntimeError: 依赖成环
        """
        with self._lock:
            definition = self._services.get(name)
            if definition is None:
                raise KeyError(f"服务未注册: {name}")
            if definition.initialized:
                return definition.instance
            if name in self._resolving:
                raise RuntimeError(f"服务依赖成环: {name}")

            self._resolving.add(name)
            try:
                for dependency in definition.dependencies:
                    self.get(dependency)
                definition.instance = definition.factory()
            except Exception as e:
                logger.error(f"服务 {name} 初始化失败: {e}")
                raise
            finally:
                self._resolving.discard(name)

            definition.initialized = True
            self._init_order.append(name)
            logger.debug(f"服务 {name} 已初始化")
            return definition.instance

    def get_optional(self, name: str) -> Any | None:
        return self.get(name) if name in self._services else None

    def set(self, name: str, instance: Any) -> None:
        """直接放入现成的实例（测试替身或外部注入）"""
        with self._lock:
            definition = self._services.setdefault(
                name, ServiceDefinition(name=name, factory=lambda: instance)
            )
            definition.instance = instance
            definition.initialized = True
            if name not in self._init_order:
                self._init_order.append(name)

    def reset_all(self) -> None:
        """同步释放；协程型 cleanup 无法等待，直接丢弃"""
        for name, result in self._teardown():
            if asyncio.iscoroutine(result):
                result.close()

    async def shutdown(self) -> None:
        logger.info("开始关闭所有服务")
        for name, result in self._teardown():
            if asyncio.iscoroutine(result):
                try:
                    await result
                except Exception as e:
                    logger.warning(f"服务 {name} 异步清理失败: {e}")
        logger.info("所有服务已关闭")

    def _teardown(self) -> Iterator[tuple[str, Any]]:
        """逆序逐个调用 cleanup，产出 (服务名, cleanup 返回值)"""
        with self._lock:
            order = list(reversed(self._init_order))
            self._init_order.clear()

        for name in order:
            definition = self._services[name]
            result = self._run_cleanup(definition)
            definition.instance = None
            definition.initialized = False
            logger.debug(f"服务 {name} 已释放")
            yield name, result

    @staticmethod
    def _run_cleanup(definition: ServiceDefinition) -> Any:
        instance = definition.instance
        if instance is None:
            return None
        try:
            if definition.cleanup is not None:
                return definition.cleanup(instance)
            closer = getattr(instance, "close", None)
            return closer() if callable(closer) else None
        except Exception as e:
            logger.warning(f"服务 {definition.name} 清理失败: {e}")
            return None

    @property
    def registered_services(self) -> list[str]:
        return list(self._services)

    @property
    def initialized_services(self) -> list[str]:
        return list(self._init_order)

    def __contains__(self, name: str) -> bool:
        return name in self._services


_registry: ServiceRegistry | None = None


def get_service_registry() -> ServiceRegistry:
    global _registry
    if _registry is None:
        _registry = ServiceRegistry()
    return _registry


def reset_service_registry() -> None:
    """释放全局注册表中的服务并换一个新的（测试用）"""
    global _registry
    if _registry is not None:
        _registry.reset_all()
    _registry = ServiceRegistry()


# ==================== 核心服务装配 ====================

def _memory_store_factories(seed_file: str | Path | None) -> dict[str, Callable[[], Any]]:
    from domains.collab_hub.core.store import (
        InMemoryCandidateStore,
        InMemoryNoteStore,
        InMemoryNotificationStore,
        InMemoryUserDirectory,
        load_seed,
    )

    candidates = InMemoryCandidateStore()
    directory = InMemoryUserDirectory()
    if seed_file:
        load_seed(Path(seed_file), candidates, directory)

    return {
        "candidate_store": lambda: candidates,
        "user_directory": lambda: directory,
        "note_store": InMemoryNoteStore,
        "notification_store": InMemoryNotificationStore,
    }


def _pg_store_factories(database_url: str | None) -> dict[str, Callable[[], Any]]:
    # 连接在首次使用时才建立
    def factory_for(name: str) -> Callable[[], Any]:
        def factory():
            from domains.collab_hub.core.pg_store import get_pg_stores
            return get_pg_stores(database_url)[name]
        return factory

    return {name: factory_for(name) for name in STORE_NAMES}


def register_core_services(
    backend: str = "memory",
    database_url: str | None = None,
    seed_file: str | Path | None = None,
) -> ServiceRegistry:
    """
    登记存储、broadcaster 和业务服务

    Args:
        backend: memory 或 postgres
        database_url: postgres 后端的连接 URL
        seed_file: memory 后端的演示数据 JSON

    Raises:
        ConfigurationError: 未知的存储后端
    """
    if backend not in STORE_BACKENDS:
        raise ConfigurationError(
            "STORE_BACKEND",
            f"未知的存储后端: {backend}，可选值: {', '.join(STORE_BACKENDS)}",
        )

    registry = get_service_registry()

    def _register(name: str, factory: Callable[[], Any], **kwargs) -> None:
        if name not in registry:
            registry.register(name, factory, **kwargs)

    if backend == "postgres":
        stores = _pg_store_factories(database_url)
    else:
        stores = _memory_store_factories(seed_file)
    for name, factory in stores.items():
        _register(name, factory)

    def _create_broadcaster():
        from domains.collab_hub.core.broadcaster import RoomBroadcaster
        return RoomBroadcaster()

    def _create_notification_service():
        from domains.collab_hub.services import NotificationService
        return NotificationService(registry.get("notification_store"), registry.get("broadcaster"))

    def _create_note_service():
        from domains.collab_hub.services import NoteService
        return NoteService(
            note_store=registry.get("note_store"),
            candidate_store=registry.get("candidate_store"),
            directory=registry.get("user_directory"),
            broadcaster=registry.get("broadcaster"),
            notifications=registry.get("notification_service"),
        )

    _register("broadcaster", _create_broadcaster, cleanup=lambda b: b.close())
    _register(
        "notification_service",
        _create_notification_service,
        dependencies=["notification_store", "broadcaster"],
    )
    _register(
        "note_service",
        _create_note_service,
        dependencies=[*STORE_NAMES, "broadcaster", "notification_service"],
    )

    logger.info(f"已注册 {len(registry.registered_services)} 个服务 (backend={backend})")
    return registry


__all__ = [
    "STORE_BACKENDS",
    "ServiceDefinition",
    "ServiceRegistry",
    "get_service_registry",
    "register_core_services",
    "reset_service_registry",
]
