# household_menu/core/config.py

import os
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import ClassVar


class WeatherConfig(BaseSettings):
    """天气服务相关配置"""
    forecast_url: str = Field(os.getenv("APP_WEATHER_FORECAST_URL", "https://api.open-meteo.com/v1/forecast"), description="天气预报API地址")
    timeout_seconds: float = Field(float(os.getenv("APP_WEATHER_TIMEOUT_SECONDS", 8.0)), description="天气请求超时时间（秒），超时后使用节气推算的天气")
    cache_ttl_seconds: int = Field(int(os.getenv("APP_WEATHER_CACHE_TTL_SECONDS", 600)), description="天气缓存过期时间（秒）")


class AIConfig(BaseSettings):
    """大模型推荐相关配置"""
    api_key: str = Field(os.getenv("AI_API_KEY", ""), description="大模型API Key，为空时AI推荐不可用")
    base_url: str = Field(os.getenv("AI_BASE_URL", "https://open.bigmodel.cn/api/paas/v4/chat/completions"), description="对话补全接口地址")
    model: str = Field(os.getenv("AI_MODEL", "glm-4-flash"), description="菜谱推荐使用的模型")
    vision_model: str = Field(os.getenv("AI_VISION_MODEL", "glm-4v-flash"), description="菜品识别使用的视觉模型")
    timeout_seconds: float = Field(float(os.getenv("AI_TIMEOUT_SECONDS", 60.0)), description="大模型请求超时时间（秒）")


class RedisConfig(BaseSettings):
    """Redis 缓存配置"""
    host: str = Field(os.getenv("APP_REDIS_HOST", "localhost"), description="Redis 主机")
    port: int = Field(int(os.getenv("APP_REDIS_PORT", 6379)), description="Redis 端口")
    db: int = Field(int(os.getenv("APP_REDIS_DB", 0)), description="Redis 数据库")
    task_result_ttl_seconds: int = Field(int(os.getenv("APP_REDIS_TASK_RESULT_TTL_SECONDS", 3600)), description="AI推荐任务结果过期时间（秒）")


class GeneratorConfig(BaseSettings):
    """配餐相关配置"""
    catalog_path: str = Field(os.getenv("APP_CATALOG_PATH", ""), description="菜品CSV路径，为空时使用内置菜品库")
    cpu_threshold: float = Field(float(os.getenv("APP_CPU_THRESHOLD", 90.0)), description="CPU使用率超过该值时拒绝新的配餐请求")
    memory_threshold: float = Field(float(os.getenv("APP_MEMORY_THRESHOLD", 90.0)), description="内存使用率超过该值时拒绝新的配餐请求")


class AppConfig(BaseSettings):
    """应用总配置"""
    weather: WeatherConfig = WeatherConfig()
    ai: AIConfig = AIConfig()
    redis: RedisConfig = RedisConfig()
    generator: GeneratorConfig = GeneratorConfig()

    log_level: ClassVar[str] = os.getenv("APP_LOG_LEVEL", "INFO")

settings = AppConfig()
