import random
from datetime import date

import pytest

from household_menu.schemas.meal_config import MealConfig
from household_menu.services.menu_generator import generate
from household_menu.services.solar_term import SolarTerm
from household_menu.services.weather import ConditionType, WeatherCondition


def _names(dishes):
    return [d.name for d in dishes]


class TestGenerateConstraints:
    """配餐硬性约束测试"""

    def test_empty_catalog(self, two_adults):
        """测试空菜品库返回空菜单而不是报错"""
        menu = generate(two_adults, [], SolarTerm.DONGZHI)

        assert menu.main_dishes == []
        assert menu.side_dishes == []
        assert menu.soups == []
        assert menu.staples == []
        assert menu.total_price == 0
        assert menu.solar_term == SolarTerm.DONGZHI
        assert menu.solar_term_description == SolarTerm.DONGZHI.dietary_suggestion.description

    @pytest.mark.parametrize("term", list(SolarTerm))
    def test_children_constraints(self, family_with_child, seed_dishes, term):
        """测试有儿童时只出现微辣以下且适合儿童的菜"""
        for seed in range(10):
            menu = generate(family_with_child, seed_dishes, term, rng=random.Random(seed))
            for dish in menu.all_dishes:
                assert dish.spicy_level <= 1
                assert dish.suitable_for_children

    @pytest.mark.parametrize("term", list(SolarTerm))
    def test_elderly_constraints(self, family_with_elderly, seed_dishes, term):
        """测试有老人时不超过中辣且适合老人"""
        for seed in range(10):
            menu = generate(family_with_elderly, seed_dishes, term, rng=random.Random(seed))
            for dish in menu.all_dishes:
                assert dish.spicy_level <= 2
                assert dish.suitable_for_elderly

    def test_unsuitable_cold_dish_never_chosen(self, dish_factory):
        """测试口水鸡同时违反辣度和儿童约束，永远不会入选"""
        catalog = [
            dish_factory("番茄炒蛋", price=12, tags=["热菜", "素菜", "清淡"]),
            dish_factory("口水鸡", price=28, tags=["凉菜", "肉类", "辣"], is_hot=False, spicy_level=3,
                         suitable_for_elderly=False, suitable_for_children=False),
        ]
        config = MealConfig(total_people=3, adult_men=1, adult_women=1, children=1, elderly=0)

        for term in (SolarTerm.DASHU, SolarTerm.DONGZHI):
            for seed in range(20):
                menu = generate(config, catalog, term, rng=random.Random(seed))
                assert "口水鸡" not in _names(menu.all_dishes)
                assert _names(menu.side_dishes) == ["番茄炒蛋"]

    @pytest.mark.parametrize("term", list(SolarTerm))
    def test_no_duplicates_and_exact_total(self, seed_dishes, term):
        """测试菜名不重复，总价等于所选菜品价格之和"""
        config = MealConfig(total_people=8, adult_men=4, adult_women=4)
        for seed in range(5):
            menu = generate(config, seed_dishes, term, rng=random.Random(seed))
            names = _names(menu.all_dishes)
            assert len(names) == len(set(names))
            assert menu.total_price == sum(d.price for d in menu.all_dishes)


class TestGenerateSelection:
    """配餐数量与冷热搭配测试"""

    def test_winter_counts_for_two(self, two_adults, seed_dishes, rng):
        """测试冬季两人餐：一荤两素一汤一主食"""
        menu = generate(two_adults, seed_dishes, SolarTerm.DONGZHI, rng=rng)

        assert len(menu.main_dishes) == 1
        assert len(menu.side_dishes) == 2
        assert len(menu.soups) == 1
        assert len(menu.staples) == 1
        assert all(d.is_meat and d.is_hot_dish for d in menu.main_dishes)
        assert all(d.is_vegetable and d.is_hot_dish for d in menu.side_dishes)
        assert all(d.is_soup for d in menu.soups)
        assert all(d.is_staple for d in menu.staples)

    def test_large_party_counts(self, seed_dishes, rng):
        config = MealConfig(total_people=6, adult_men=3, adult_women=3)
        menu = generate(config, seed_dishes, SolarTerm.DONGZHI, rng=rng)

        assert len(menu.main_dishes) == 3
        assert len(menu.side_dishes) == 4
        assert len(menu.soups) == 2
        assert len(menu.staples) == 1

    def test_summer_substitutes_cold_dishes(self, two_adults, seed_dishes):
        """测试大暑：副菜换成两道凉菜，另加一道消暑甜品"""
        for seed in range(10):
            menu = generate(two_adults, seed_dishes, SolarTerm.DASHU, rng=random.Random(seed))

            assert len(menu.side_dishes) == 3
            assert all(d.is_cold_dish for d in menu.side_dishes[:2])
            bonus = menu.side_dishes[2]
            assert bonus.is_dessert
            assert bonus.has_tag("消暑")

    def test_cold_picks_replace_tail_of_sides(self, seed_dishes, rng):
        """测试副菜多于凉菜时只替换末尾"""
        config = MealConfig(total_people=6, adult_men=3, adult_women=3)
        menu = generate(config, seed_dishes, SolarTerm.DASHU, rng=rng)

        # 4道副菜中后两道换成凉菜，末尾再加一道甜品
        assert len(menu.side_dishes) == 5
        assert all(d.is_hot_dish for d in menu.side_dishes[:2])
        assert all(d.is_cold_dish for d in menu.side_dishes[2:4])
        assert menu.side_dishes[4].has_tag("消暑")

    def test_hot_weather_triggers_cold_dishes_in_winter(self, two_adults, seed_dishes, rng):
        """测试天气炎热时即使节气偏冷也上凉菜"""
        weather = WeatherCondition(temperature=35, condition=ConditionType.HOT)
        menu = generate(two_adults, seed_dishes, SolarTerm.DONGZHI, weather=weather, rng=rng)

        assert all(d.is_cold_dish for d in menu.side_dishes[:2])
        assert menu.weather_description == weather.dietary_preference.description

    def test_dessert_overlap_deduplicated(self, two_adults, dish_factory):
        """测试同时是热菜和消暑甜品的菜只出现在主菜中"""
        dish = dish_factory("冰糖炖肉", price=30, tags=["甜品", "热菜", "肉类", "消暑"], is_hot=False)
        menu = generate(two_adults, [dish], SolarTerm.DASHU, rng=random.Random(1))

        assert _names(menu.main_dishes) == ["冰糖炖肉"]
        assert menu.side_dishes == []
        assert menu.total_price == 30

    def test_menu_date(self, two_adults, seed_dishes):
        menu = generate(two_adults, seed_dishes, SolarTerm.HANLU, today=date(2025, 10, 19))
        assert menu.date == date(2025, 10, 19)
        assert "寒露" in menu.share_text


class TestGenerateRandomness:
    """“换一批”随机性测试"""

    def test_seeded_rng_is_reproducible(self, two_adults, seed_dishes):
        first = generate(two_adults, seed_dishes, SolarTerm.QIUFEN, rng=random.Random(42))
        second = generate(two_adults, seed_dishes, SolarTerm.QIUFEN, rng=random.Random(42))
        assert _names(first.all_dishes) == _names(second.all_dishes)

    def test_regenerate_varies(self, two_adults, seed_dishes):
        """测试相同输入多次生成会得到不同菜单"""
        outcomes = {
            tuple(_names(generate(two_adults, seed_dishes, SolarTerm.QIUFEN).all_dishes))
            for _ in range(20)
        }
        assert len(outcomes) > 1
