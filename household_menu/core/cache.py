# household_menu/core/cache.py
import redis.asyncio as redis
from contextlib import asynccontextmanager
from .config import settings, RedisConfig
import logging
import asyncio
import json
from typing import Optional, Any
import time

logger = logging.getLogger(__name__)

class RedisConnectionError(Exception):
    """Redis连接相关的自定义异常"""
    pass

class RedisManager:
    """异步Redis连接池管理器，用于保存AI推荐任务结果和天气缓存"""
    def __init__(self, config: Optional[RedisConfig] = None):
        self.config = config or settings.redis
        self.pool = None
        self._connection_healthy = False
        self._last_health_check = 0
        self._health_check_interval = 30

    def initialize(self):
        """在应用启动时创建连接池"""
        if self.pool is None:
            logger.info(f"正在初始化Redis连接池: {self.config.host}:{self.config.port}")
            self.pool = redis.ConnectionPool(
                host=self.config.host,
                port=self.config.port,
                db=self.config.db,
                decode_responses=True,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=5
            )

    async def close(self):
        """在应用关闭时关闭连接池"""
        if self.pool:
            logger.info("正在关闭Redis连接池...")
            try:
                await self.pool.disconnect()
            except Exception as e:
                logger.warning(f"关闭Redis连接池时出现警告: {e}")
            finally:
                self.pool = None
                self._connection_healthy = False

    @asynccontextmanager
    async def _client(self):
        if not self.pool:
            raise RedisConnectionError("Redis连接池尚未初始化。请在应用启动时调用 initialize()。")
        client = redis.Redis(connection_pool=self.pool)
        try:
            yield client
        finally:
            await client.aclose()

    async def _check_connection_health(self) -> bool:
        current_time = time.time()
        if current_time - self._last_health_check < self._health_check_interval:
            return self._connection_healthy

        try:
            async with self._client() as client:
                await client.ping()
                self._connection_healthy = True
        except Exception as e:
            self._connection_healthy = False
            logger.warning(f"Redis连接健康检查失败: {e}")

        self._last_health_check = current_time
        return self._connection_healthy

    async def execute_with_retry(
        self,
        operation,
        *args,
        max_retries: int = 3,
        base_delay: float = 0.1,
        max_delay: float = 2.0,
        fallback_result: Any = None,
        **kwargs
    ) -> Any:
        """
        执行Redis操作，连接类错误按指数退避重试

        Args:
            operation: 接收 client 作为第一个参数的协程函数
            max_retries: 最大重试次数
            base_delay: 基础延迟时间（秒）
            max_delay: 最大延迟时间（秒）
            fallback_result: 所有重试失败后返回的默认值，为 None 时抛出 RedisConnectionError
        """
        last_exception = None

        for attempt in range(max_retries + 1):
            try:
                async with self._client() as client:
                    result = await operation(client, *args, **kwargs)
                    self._connection_healthy = True
                    return result

            except (redis.ConnectionError, redis.TimeoutError, OSError, RedisConnectionError) as e:
                last_exception = e
                self._connection_healthy = False
                if isinstance(e, RedisConnectionError):
                    # 连接池未初始化，重试没有意义
                    break

                if attempt < max_retries:
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    logger.warning(
                        f"Redis操作失败 (尝试 {attempt + 1}/{max_retries + 1}): {e}. "
                        f"{delay:.2f}秒后重试..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Redis操作在 {max_retries + 1} 次尝试后仍然失败: {e}")

        if fallback_result is not None:
            logger.warning(f"Redis操作失败，返回默认值: {fallback_result}")
            return fallback_result
        raise RedisConnectionError(f"Redis操作失败。最后的错误: {last_exception}")

    async def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        async def _get_operation(client, key):
            return await client.get(key)

        try:
            return await self.execute_with_retry(_get_operation, key, fallback_result=default)
        except RedisConnectionError:
            return default

    async def set(self, key: str, value: str, ex: Optional[int] = None, **kwargs) -> bool:
        """设置键值，失败时返回 False 而不抛出异常"""
        async def _set_operation(client, key, value, ex=None, **kwargs):
            return await client.set(key, value, ex=ex, **kwargs)

        result = await self.execute_with_retry(_set_operation, key, value, ex=ex, fallback_result=False, **kwargs)
        return bool(result)

    async def delete(self, key: str) -> int:
        async def _delete_operation(client, key):
            return await client.delete(key)

        return await self.execute_with_retry(_delete_operation, key, fallback_result=0)

    async def get_json(self, key: str) -> Optional[Any]:
        """读取JSON值，数据损坏时删除该键并返回 None"""
        raw = await self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"缓存数据格式不正确，删除损坏的缓存。Key: {key}")
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(value, ensure_ascii=False), ex=ex)

    async def ping(self) -> bool:
        async def _ping_operation(client):
            await client.ping()
            return True

        return await self.execute_with_retry(_ping_operation, max_retries=0, fallback_result=False)

    async def get_connection_status(self) -> dict:
        is_healthy = await self._check_connection_health()
        return {
            "healthy": is_healthy,
            "pool_created": self.pool is not None,
            "last_health_check": self._last_health_check,
            "host": self.config.host,
            "port": self.config.port,
            "db": self.config.db
        }

# 全局实例，在应用中共享
redis_manager = RedisManager()
