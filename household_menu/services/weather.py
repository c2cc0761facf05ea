# household_menu/services/weather.py
import logging
from datetime import date as Date
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..core.config import settings, WeatherConfig
from ..schemas.diet import DietarySuggestion
from .solar_term import SolarTerm, resolve

logger = logging.getLogger(__name__)

HOT_THRESHOLD = 30.0
COLD_THRESHOLD = 10.0
# 晴/多云天气细分为炎热或寒冷时使用的阈值
CLEAR_SKY_COLD_THRESHOLD = 5.0

RAIN_CODES = {51, 53, 55, 61, 63, 65, 80, 81, 82, 95, 96, 99}
SNOW_CODES = {71, 73, 75, 77, 85, 86}
FOG_CODES = {45, 48}


class ConditionType(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    HOT = "hot"
    COLD = "cold"
    NORMAL = "normal"

    @property
    def label(self) -> str:
        return _CONDITION_LABELS[self]


_CONDITION_LABELS = {
    ConditionType.SUNNY: "晴",
    ConditionType.CLOUDY: "多云",
    ConditionType.RAINY: "雨",
    ConditionType.SNOWY: "雪",
    ConditionType.HOT: "炎热",
    ConditionType.COLD: "寒冷",
    ConditionType.NORMAL: "适宜",
}


class WeatherCondition(BaseModel):
    temperature: float = Field(..., description="气温（°C）")
    condition: ConditionType
    humidity: float = Field(0.5, ge=0, le=1, description="相对湿度（0-1）")

    @property
    def is_hot(self) -> bool:
        return self.temperature > HOT_THRESHOLD

    @property
    def is_cold(self) -> bool:
        return self.temperature < COLD_THRESHOLD

    @property
    def is_rainy(self) -> bool:
        return self.condition == ConditionType.RAINY

    @property
    def summary(self) -> str:
        return f"{self.condition.label} {int(self.temperature)}°C"

    @property
    def dietary_preference(self) -> DietarySuggestion:
        """按 炎热 > 寒冷 > 雨天 > 其他 的顺序，只取第一条命中的规则"""
        if self.is_hot:
            return DietarySuggestion(
                prefer_hot=False, prefer_soup=True, prefer_light=True, prefer_cold=True,
                description="天气炎热，宜清淡消暑",
            )
        elif self.is_cold:
            return DietarySuggestion(
                prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
                description="天气寒冷，宜温热进补",
            )
        elif self.is_rainy:
            return DietarySuggestion(
                prefer_hot=True, prefer_soup=True, prefer_light=False, prefer_cold=False,
                description="雨天湿冷，宜热汤暖身",
            )
        else:
            return DietarySuggestion(
                prefer_hot=True, prefer_soup=False, prefer_light=False, prefer_cold=False,
                description="天气适宜，饮食均衡",
            )

    @classmethod
    def from_solar_term(cls, term: SolarTerm) -> "WeatherCondition":
        temp = term.estimated_temperature
        if temp > HOT_THRESHOLD:
            condition = ConditionType.HOT
        elif temp < CLEAR_SKY_COLD_THRESHOLD:
            condition = ConditionType.COLD
        else:
            condition = ConditionType.NORMAL
        return cls(temperature=temp, condition=condition, humidity=0.5)


class _OpenMeteoCurrent(BaseModel):
    temperature_2m: float
    relative_humidity_2m: float
    weather_code: int


class _OpenMeteoResponse(BaseModel):
    current: _OpenMeteoCurrent


def _by_temperature(temperature: float, mild: ConditionType) -> ConditionType:
    if temperature > HOT_THRESHOLD:
        return ConditionType.HOT
    if temperature < CLEAR_SKY_COLD_THRESHOLD:
        return ConditionType.COLD
    return mild


def map_weather_code(code: int, temperature: float) -> ConditionType:
    """把 WMO 天气代码归类为 ConditionType"""
    if code == 0:
        return _by_temperature(temperature, ConditionType.SUNNY)
    if code in (1, 2, 3):
        return _by_temperature(temperature, ConditionType.CLOUDY)
    if code in FOG_CODES:
        return ConditionType.CLOUDY
    if code in RAIN_CODES:
        return ConditionType.RAINY
    if code in SNOW_CODES:
        return ConditionType.SNOWY
    return _by_temperature(temperature, ConditionType.NORMAL)


def fallback_weather(date: Optional[Date] = None) -> WeatherCondition:
    """无定位或网络不可用时，用当前节气推算天气"""
    return WeatherCondition.from_solar_term(resolve(date or Date.today()))


async def current_weather(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[WeatherConfig] = None,
) -> WeatherCondition:
    """
    查询当前天气。任何失败都会回退到节气推算的天气，不向调用方抛出异常。
    """
    if latitude is None or longitude is None:
        logger.info("未提供定位，使用节气推算的天气。")
        return fallback_weather()

    config = config or settings.weather
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m,relative_humidity_2m,weather_code",
        "timezone": "auto",
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.timeout_seconds) as own_client:
                response = await own_client.get(config.forecast_url, params=params)
        else:
            response = await client.get(config.forecast_url, params=params, timeout=config.timeout_seconds)

        if response.status_code != 200:
            logger.warning(f"🚨 天气API返回异常状态码: {response.status_code}，使用节气推算的天气。")
            return fallback_weather()

        current = _OpenMeteoResponse.model_validate(response.json()).current

    except httpx.RequestError as e:
        logger.warning(f"🚨 调用天气API时发生网络错误: {e!r}，使用节气推算的天气。")
        return fallback_weather()
    except (ValueError, ValidationError) as e:
        logger.warning(f"🚨 天气API响应格式不正确: {e}，使用节气推算的天气。")
        return fallback_weather()
    except Exception as e:
        logger.error(f"🚨 获取天气时发生未知错误: {e}", exc_info=True)
        return fallback_weather()

    temperature = current.temperature_2m
    humidity = min(max(current.relative_humidity_2m / 100.0, 0.0), 1.0)
    condition = map_weather_code(current.weather_code, temperature)
    logger.info(f"✅ 当前天气: {condition.label} {temperature}°C, 湿度 {humidity:.0%}")
    return WeatherCondition(temperature=temperature, condition=condition, humidity=humidity)
