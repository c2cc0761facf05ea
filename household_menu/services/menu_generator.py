# household_menu/services/menu_generator.py

import logging
import random
from datetime import date as Date
from typing import Callable, List, Optional, Sequence, Set

from ..schemas.meal_config import MealConfig
from ..schemas.menu import DailyMenu, Dish, deduplicate_dishes, TAG_COOLING, TAG_LIGHT, TAG_NOURISHING, TAG_SOUP
from .solar_term import SolarTerm
from .weather import WeatherCondition

logger = logging.getLogger(__name__)

STAPLE_COUNT = 1
MAX_COLD_PICKS = 2

# 评分加成
RANDOM_BASE_MAX = 10.0
BONUS_COLD_WHEN_PREFER_COLD = 5
BONUS_HOT_WHEN_NOT_PREFER_COLD = 3
BONUS_LIGHT = 4
BONUS_SOUP_OR_NOURISHING = 3
BONUS_WARMING_IN_COLD_WEATHER = 4
BONUS_COOLING_IN_HOT_WEATHER = 4
BONUS_NOURISHING_OFF_SEASON = 3
PENALTY_SPICY_FOR_ELDERLY = 3


def _passes_constraints(dish: Dish, config: MealConfig) -> bool:
    """硬性约束：辣度上限、儿童/老人适宜"""
    if dish.spicy_level > config.max_spicy_level:
        return False
    if config.has_children and not dish.suitable_for_children:
        return False
    if config.has_elderly and not dish.suitable_for_elderly:
        return False
    return True


def _pick_top(pool: Sequence[Dish], count: int, score: Callable[[Dish], float]) -> List[Dish]:
    """
    每道菜重新打分后取前 count 名。分数里的随机部分就是“换一批”的来源，同分不再二次排序。
    """
    if not pool or count <= 0:
        return []
    scored = sorted(((dish, score(dish)) for dish in pool), key=lambda x: x[1], reverse=True)
    return [dish for dish, _ in scored[:count]]


def generate(
    config: MealConfig,
    dishes: Sequence[Dish],
    solar_term: SolarTerm,
    weather: Optional[WeatherCondition] = None,
    rng: Optional[random.Random] = None,
    today: Optional[Date] = None,
) -> DailyMenu:
    """
    按就餐人员、节气和天气从菜品库中生成今日菜单。

    结果带有随机性：相同输入多次调用会得到不同但同样合规的菜单。
    需要可复现的结果时传入带种子的 rng。任何输入（包括空菜品库）都会返回一份菜单，
    某类菜品没有可选项时该类为空列表。
    """
    rng = rng or random.Random()
    weather = weather or WeatherCondition.from_solar_term(solar_term)
    season = solar_term.dietary_suggestion
    weather_pref = weather.dietary_preference

    prefer_cold = season.prefer_cold or weather_pref.prefer_cold
    prefer_light = season.prefer_light or weather_pref.prefer_light
    prefer_soup = season.prefer_soup or weather_pref.prefer_soup

    # 按标签分组，甜品/饮品可能与其他分组重叠
    eligible = [d for d in dishes if _passes_constraints(d, config)]
    soups = [d for d in eligible if d.is_soup]
    staples = [d for d in eligible if d.is_staple]
    cold_dishes = [d for d in eligible if d.is_cold_dish]
    hot_dishes = [d for d in eligible if d.is_hot_dish]
    desserts = [d for d in eligible if d.is_dessert]

    def score(dish: Dish) -> float:
        s = rng.random() * RANDOM_BASE_MAX
        if prefer_cold and not dish.is_hot:
            s += BONUS_COLD_WHEN_PREFER_COLD
        if not prefer_cold and dish.is_hot:
            s += BONUS_HOT_WHEN_NOT_PREFER_COLD
        if prefer_light and dish.has_tag(TAG_LIGHT):
            s += BONUS_LIGHT
        if prefer_soup and (dish.has_tag(TAG_SOUP) or dish.has_tag(TAG_NOURISHING)):
            s += BONUS_SOUP_OR_NOURISHING
        if weather.is_cold and dish.is_hot:
            s += BONUS_WARMING_IN_COLD_WEATHER
        if weather.is_hot and not dish.is_hot:
            s += BONUS_COOLING_IN_HOT_WEATHER
        if not season.prefer_light and dish.has_tag(TAG_NOURISHING):
            s += BONUS_NOURISHING_OFF_SEASON
        if config.has_elderly and dish.spicy_level >= 2:
            s -= PENALTY_SPICY_FOR_ELDERLY
        return s

    main_target = max(1, config.dish_count // 2)
    side_target = max(1, config.dish_count - main_target)

    meat_dishes = [d for d in hot_dishes if d.is_meat]
    veg_dishes = [d for d in hot_dishes if d.is_vegetable]
    mains = _pick_top(meat_dishes, main_target, score)
    sides = _pick_top(veg_dishes, side_target, score)

    if prefer_cold and cold_dishes:
        cold_picks = _pick_top(cold_dishes, min(MAX_COLD_PICKS, len(cold_dishes)), score)
        if len(sides) > len(cold_picks):
            sides = sides[:len(sides) - len(cold_picks)] + cold_picks
        else:
            sides = cold_picks

    if prefer_cold:
        # 消暑甜品作为额外赠送，不占副菜名额
        sides = sides + _pick_top([d for d in desserts if d.has_tag(TAG_COOLING)], 1, score)

    selected_soups = _pick_top(soups, config.soup_count, score)
    selected_staples = _pick_top(staples, STAPLE_COUNT, score)

    used_names: Set[str] = set()
    final_mains = deduplicate_dishes(mains, used_names)
    final_sides = deduplicate_dishes(sides, used_names)
    final_soups = deduplicate_dishes(selected_soups, used_names)
    final_staples = deduplicate_dishes(selected_staples, used_names)

    all_selected = final_mains + final_sides + final_soups + final_staples
    total_price = sum(d.price for d in all_selected)

    logger.debug(
        f"配餐完成: {solar_term.value}, {weather.summary}, 主菜{len(final_mains)} 副菜{len(final_sides)} "
        f"汤{len(final_soups)} 主食{len(final_staples)}, 总价 {total_price}"
    )

    return DailyMenu(
        date=today or Date.today(),
        main_dishes=final_mains,
        side_dishes=final_sides,
        soups=final_soups,
        staples=final_staples,
        solar_term=solar_term,
        solar_term_description=season.description,
        weather_description=weather_pref.description,
        total_price=total_price,
    )
