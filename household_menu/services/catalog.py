# household_menu/services/catalog.py

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from ..schemas.menu import Dish

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "dishes.csv"
TAG_SEPARATOR = "|"
_BOOL_COLUMNS = ["is_hot", "suitable_for_elderly", "suitable_for_children"]


class DishCatalog(ABC):
    """菜品库。配餐引擎只读取快照，从不写入。"""

    @abstractmethod
    def all_dishes(self) -> List[Dish]:
        ...


class InMemoryCatalog(DishCatalog):
    def __init__(self, dishes: Iterable[Dish]):
        self._dishes = list(dishes)

    def all_dishes(self) -> List[Dish]:
        return list(self._dishes)


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "是")
    return bool(value)


class CsvCatalog(DishCatalog):
    """
    从CSV加载菜品。tags 列用 '|' 分隔；加载一次后缓存在内存中，reload() 重新读取文件。
    """
    def __init__(self, path: Union[str, Path] = DEFAULT_CATALOG_PATH, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding
        self._dishes: Optional[List[Dish]] = None

    def reload(self) -> List[Dish]:
        df = pd.read_csv(self.path, encoding=self.encoding, dtype={"tags": str, "category": str})
        df["name"] = df["name"].astype(str).str.strip()
        df["tags"] = df["tags"].fillna("")
        if "cooking_time" in df.columns:
            df["cooking_time"] = df["cooking_time"].fillna(0)
        for column in _BOOL_COLUMNS:
            df[column] = df[column].map(_to_bool)

        dishes = []
        for record in df.to_dict("records"):
            record["tags"] = [t.strip() for t in record["tags"].split(TAG_SEPARATOR) if t.strip()]
            record["price"] = float(record["price"])
            record["spicy_level"] = int(record["spicy_level"])
            record["cooking_time"] = int(record.get("cooking_time") or 0)
            if pd.isna(record.get("category")):
                record["category"] = None
            dishes.append(Dish(**record))

        logger.info(f"✅ 已从 {self.path} 加载 {len(dishes)} 道菜。")
        self._dishes = dishes
        return dishes

    def all_dishes(self) -> List[Dish]:
        if self._dishes is None:
            self.reload()
        return list(self._dishes)


def default_catalog(path: Optional[str] = None) -> CsvCatalog:
    """返回CSV菜品库，未指定路径时使用内置的家常菜品库"""
    return CsvCatalog(path or DEFAULT_CATALOG_PATH)


def describe_dish(dish: Dish) -> str:
    spicy = f"辣度{dish.spicy_level}" if dish.spicy_level > 0 else "不辣"
    temperature = "热菜" if dish.is_hot else "凉菜"
    tags = ",".join(dish.tags)
    return f"{dish.name}(¥{int(dish.price)},{temperature},{spicy},标签:{tags})"


def describe_catalog(dishes: Iterable[Dish]) -> str:
    """把菜品库渲染成给大模型看的文本，每行一道菜"""
    return "\n".join(describe_dish(dish) for dish in dishes)


class DishNameResolver(ABC):
    """把大模型返回的菜名映射回菜品库中的菜品"""

    @abstractmethod
    def resolve(self, name: str) -> Optional[Dish]:
        ...

    def resolve_all(self, names: Iterable[str]) -> List[Dish]:
        """找不到的菜名直接丢弃，不报错"""
        resolved = []
        for name in names:
            dish = self.resolve(name)
            if dish is None:
                logger.debug(f"菜品库中没有 '{name}'，已忽略")
                continue
            resolved.append(dish)
        return resolved


class ExactNameResolver(DishNameResolver):
    """按菜名精确匹配。菜名重复时以最后一条为准。"""

    def __init__(self, dishes: Iterable[Dish]):
        self._lookup: Dict[str, Dish] = {dish.name: dish for dish in dishes}

    def resolve(self, name: str) -> Optional[Dish]:
        return self._lookup.get(name)
