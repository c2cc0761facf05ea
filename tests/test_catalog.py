import pytest

from household_menu.schemas.menu import Dish
from household_menu.services.catalog import (
    CsvCatalog,
    ExactNameResolver,
    InMemoryCatalog,
    default_catalog,
    describe_catalog,
    describe_dish,
)


class TestCsvCatalog:
    """CSV菜品库测试"""

    def test_seed_catalog(self, seed_dishes):
        """测试内置菜品库完整加载"""
        assert len(seed_dishes) == 50
        names = [d.name for d in seed_dishes]
        assert len(set(names)) == len(names)

        tomato = next(d for d in seed_dishes if d.name == "番茄炒蛋")
        assert tomato.price == 12
        assert tomato.tags == ["热菜", "素菜", "经典", "清淡"]
        assert tomato.is_hot
        assert tomato.category == "家常热菜"

    def test_seed_catalog_cold_dishes(self, seed_dishes):
        chicken = next(d for d in seed_dishes if d.name == "口水鸡")
        assert not chicken.is_hot
        assert chicken.spicy_level == 3
        assert not chicken.suitable_for_children
        assert not chicken.suitable_for_elderly

    def test_parse_custom_file(self, tmp_path):
        """测试自定义CSV的标签与布尔列解析"""
        path = tmp_path / "dishes.csv"
        path.write_text(
            "category,name,price,tags,is_hot,spicy_level,suitable_for_elderly,suitable_for_children,cooking_time\n"
            ",凉拌海带,9.5,凉菜| 素菜 ,false,1,TRUE,0,5\n"
            "粥品,白粥,3,粥,true,0,yes,true,\n",
            encoding="utf-8",
        )
        dishes = CsvCatalog(path).all_dishes()

        kelp, congee = dishes
        assert kelp.name == "凉拌海带"
        assert kelp.price == 9.5
        assert kelp.tags == ["凉菜", "素菜"]
        assert kelp.is_hot is False
        assert kelp.suitable_for_elderly is True
        assert kelp.suitable_for_children is False
        assert kelp.category is None
        assert congee.is_soup
        assert congee.cooking_time == 0

    def test_results_are_cached_until_reload(self, tmp_path):
        path = tmp_path / "dishes.csv"
        header = "name,price,tags,is_hot,spicy_level,suitable_for_elderly,suitable_for_children,cooking_time\n"
        path.write_text(header + "米饭,2,主食,true,0,true,true,20\n", encoding="utf-8")
        catalog = CsvCatalog(path)
        assert len(catalog.all_dishes()) == 1

        path.write_text(header + "米饭,2,主食,true,0,true,true,20\n馒头,1,主食,true,0,true,true,20\n", encoding="utf-8")
        assert len(catalog.all_dishes()) == 1
        catalog.reload()
        assert len(catalog.all_dishes()) == 2

    def test_snapshot_is_a_copy(self):
        catalog = default_catalog()
        catalog.all_dishes().clear()
        assert len(catalog.all_dishes()) == 50

    def test_in_memory_catalog(self, dish_factory):
        catalog = InMemoryCatalog([dish_factory("清炒时蔬")])
        assert [d.name for d in catalog.all_dishes()] == ["清炒时蔬"]


class TestDescribe:
    """菜品库文本渲染测试"""

    def test_describe_dish(self, seed_dishes):
        tomato = next(d for d in seed_dishes if d.name == "番茄炒蛋")
        assert describe_dish(tomato) == "番茄炒蛋(¥12,热菜,不辣,标签:热菜,素菜,经典,清淡)"

    def test_describe_spicy_cold_dish(self, dish_factory):
        dish = dish_factory("口水鸡", price=28, tags=["凉菜", "肉类", "辣"], is_hot=False, spicy_level=3)
        assert describe_dish(dish) == "口水鸡(¥28,凉菜,辣度3,标签:凉菜,肉类,辣)"

    def test_describe_catalog_one_line_per_dish(self, seed_dishes):
        lines = describe_catalog(seed_dishes).split("\n")
        assert len(lines) == 50
        assert describe_catalog([]) == ""


class TestExactNameResolver:
    """菜名映射测试"""

    def test_unknown_names_are_dropped(self, seed_dishes):
        resolver = ExactNameResolver(seed_dishes)
        resolved = resolver.resolve_all(["红烧肉", "佛跳墙", "蛋炒饭"])
        assert [d.name for d in resolved] == ["红烧肉", "蛋炒饭"]

    def test_duplicate_names_last_wins(self, dish_factory):
        resolver = ExactNameResolver([dish_factory("炒青菜", price=8), dish_factory("炒青菜", price=10)])
        assert resolver.resolve("炒青菜").price == 10


class TestDishClassification:
    """菜品分类判断测试"""

    def test_soup_and_congee(self, dish_factory):
        assert dish_factory("紫菜汤", tags=["汤"]).is_soup
        assert dish_factory("白粥", tags=["粥"]).is_soup

    def test_cold_dish_excludes_soup_and_staple(self, dish_factory):
        assert dish_factory("拍黄瓜", tags=["凉菜", "素菜"], is_hot=False).is_cold_dish
        assert not dish_factory("冷面", tags=["凉菜", "主食"], is_hot=False).is_cold_dish
        assert not dish_factory("冷汤", tags=["凉菜", "汤"], is_hot=False).is_cold_dish

    def test_hot_dish_includes_seafood(self, dish_factory):
        shrimp = dish_factory("油焖大虾", tags=["海鲜"])
        assert shrimp.is_hot_dish
        assert shrimp.is_meat
        assert not dish_factory("海鲜汤", tags=["海鲜", "汤"]).is_hot_dish
        assert not dish_factory("海鲜凉拌", tags=["海鲜", "凉菜"]).is_hot_dish

    def test_dessert_and_drink(self, dish_factory):
        assert dish_factory("酸梅汤", tags=["饮品"]).is_dessert
        assert dish_factory("桂花糕", tags=["甜品"]).is_dessert

    def test_price_must_not_be_negative(self):
        with pytest.raises(ValueError):
            Dish(name="倒贴菜", price=-1)
