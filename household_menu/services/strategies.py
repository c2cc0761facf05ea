# household_menu/services/strategies.py
import logging
import random
from abc import ABC, abstractmethod
from datetime import date as Date
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..schemas.diner import DiningPerson
from ..schemas.meal_config import MealConfig
from ..schemas.menu import DailyMenu, Dish
from .ai_service import AIService, RecommendationError, build_daily_menu
from .catalog import DishNameResolver, ExactNameResolver, describe_catalog
from .menu_generator import generate
from .solar_term import SolarTerm
from .weather import WeatherCondition

logger = logging.getLogger(__name__)


class MenuRecommendationStrategy(ABC):
    """两种推荐方式（规则配餐 / AI推荐）的统一接口，输出结构相同的 DailyMenu"""

    @abstractmethod
    async def recommend(
        self,
        config: MealConfig,
        dishes: Sequence[Dish],
        solar_term: SolarTerm,
        weather: Optional[WeatherCondition] = None,
        today: Optional[Date] = None,
    ) -> DailyMenu:
        ...


class DeterministicStrategy(MenuRecommendationStrategy):
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    async def recommend(self, config, dishes, solar_term, weather=None, today=None) -> DailyMenu:
        return generate(config, dishes, solar_term, weather, rng=self.rng, today=today)


class AIStrategy(MenuRecommendationStrategy):
    """
    调用大模型推荐，再把菜名映射回菜品库。失败时抛出 RecommendationError，
    是否回退到规则配餐由调用方决定。
    """

    def __init__(
        self,
        service: AIService,
        resolver_factory: Callable[[Sequence[Dish]], DishNameResolver] = ExactNameResolver,
        diners: Optional[Iterable[DiningPerson]] = None,
    ):
        self.service = service
        self.resolver_factory = resolver_factory
        self.diners = list(diners or [])

    async def recommend(self, config, dishes, solar_term, weather=None, today=None) -> DailyMenu:
        weather = weather or WeatherCondition.from_solar_term(solar_term)
        result = await self.service.recommend(describe_catalog(dishes), config, weather, solar_term, self.diners)
        return build_daily_menu(result, self.resolver_factory(dishes), weather, solar_term, today=today)


def generate_deterministic(
    config: MealConfig,
    dishes: Sequence[Dish],
    solar_term: SolarTerm,
    weather: Optional[WeatherCondition] = None,
    rng: Optional[random.Random] = None,
) -> DailyMenu:
    """规则配餐入口，不会失败"""
    return generate(config, dishes, solar_term, weather, rng=rng)


async def generate_via_ai(
    catalog_text: str,
    config: MealConfig,
    weather: WeatherCondition,
    solar_term: SolarTerm,
    api_key: str,
    dishes: Sequence[Dish],
    service: Optional[AIService] = None,
    diners: Optional[List[DiningPerson]] = None,
) -> Tuple[Optional[DailyMenu], Optional[RecommendationError]]:
    """
    AI推荐入口。成功返回 (菜单, None)，失败返回 (None, 错误)。
    catalog_text 是发给大模型的菜品描述，dishes 是用于映射菜名的同一份菜品快照。
    """
    service = service or AIService(api_key=api_key)
    try:
        result = await service.recommend(catalog_text, config, weather, solar_term, diners)
    except RecommendationError as e:
        logger.warning(f"AI推荐失败: {e}")
        return None, e
    return build_daily_menu(result, ExactNameResolver(dishes), weather, solar_term), None
