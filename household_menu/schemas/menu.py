# household_menu/schemas/menu.py

from datetime import date as Date
from pydantic import BaseModel, Field, computed_field, model_validator
from typing import List, Optional, Set, Union, Literal

from .diet import DietarySuggestion
from .diner import DiningPerson
from .meal_config import MealConfig
from ..services.solar_term import SolarTerm

# 配餐引擎用到的标签，其余标签只做展示
TAG_SOUP = "汤"
TAG_CONGEE = "粥"
TAG_STAPLE = "主食"
TAG_COLD = "凉菜"
TAG_HOT = "热菜"
TAG_SEAFOOD = "海鲜"
TAG_MEAT = "肉类"
TAG_VEGETABLE = "素菜"
TAG_DESSERT = "甜品"
TAG_DRINK = "饮品"
TAG_LIGHT = "清淡"
TAG_NOURISHING = "滋补"
TAG_COOLING = "消暑"


class Dish(BaseModel):
    """
    菜品库中的单个菜品。name 是跨模块引用菜品用的键，但存储层并不保证唯一。
    tags 是开放词表，新增标签不需要改代码。
    """
    name: str = Field(..., min_length=1, description="菜品名称")
    price: float = Field(..., ge=0, description="价格（元）")
    tags: List[str] = Field(default_factory=list, description="分类/属性标签, e.g., ['热菜', '素菜', '清淡']")
    is_hot: bool = Field(True, description="热菜为 True，凉菜为 False")
    spicy_level: int = Field(0, ge=0, le=3, description="辣度: 0=不辣，1=微辣，2=中辣，3=重辣")
    suitable_for_elderly: bool = True
    suitable_for_children: bool = True
    cooking_time: int = Field(0, ge=0, description="烹饪时长（分钟），仅供展示")
    category: Optional[str] = Field(None, description="菜品分组, e.g., '家常热菜'")

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @property
    def is_soup(self) -> bool:
        return self.has_tag(TAG_SOUP) or self.has_tag(TAG_CONGEE)

    @property
    def is_staple(self) -> bool:
        return self.has_tag(TAG_STAPLE)

    @property
    def is_cold_dish(self) -> bool:
        return self.has_tag(TAG_COLD) and not self.has_tag(TAG_SOUP) and not self.is_staple

    @property
    def is_hot_dish(self) -> bool:
        return (
            (self.has_tag(TAG_HOT) or self.has_tag(TAG_SEAFOOD))
            and not self.has_tag(TAG_SOUP)
            and not self.is_staple
            and not self.has_tag(TAG_COLD)
        )

    @property
    def is_dessert(self) -> bool:
        return self.has_tag(TAG_DESSERT) or self.has_tag(TAG_DRINK)

    @property
    def is_meat(self) -> bool:
        return self.has_tag(TAG_MEAT) or self.has_tag(TAG_SEAFOOD)

    @property
    def is_vegetable(self) -> bool:
        return self.has_tag(TAG_VEGETABLE)


def deduplicate_dishes(dishes: List[Dish], used_names: Set[str]) -> List[Dish]:
    """按菜名去重，先出现的保留。used_names 跨多次调用共享，用于整份菜单的全局去重。"""
    result = []
    for dish in dishes:
        if dish.name in used_names:
            continue
        used_names.add(dish.name)
        result.append(dish)
    return result


class DailyMenu(BaseModel):
    """
    一次配餐的结果。每次生成都是新对象，“换一批”会整体替换。
    同一个菜名在整份菜单中最多出现一次。
    """
    date: Date
    main_dishes: List[Dish] = Field(default_factory=list)
    side_dishes: List[Dish] = Field(default_factory=list)
    soups: List[Dish] = Field(default_factory=list)
    staples: List[Dish] = Field(default_factory=list)
    solar_term: SolarTerm
    solar_term_description: str
    weather_description: str
    total_price: float = 0

    @property
    def all_dishes(self) -> List[Dish]:
        return self.main_dishes + self.side_dishes + self.soups + self.staples

    @computed_field
    @property
    def share_text(self) -> str:
        names = "、".join(d.name for d in self.all_dishes)
        return f"今日菜谱（{self.solar_term.value}）：{names}。预估总价¥{int(self.total_price)}"


class MenuRecommendationResult(BaseModel):
    """大模型返回的菜谱推荐，菜名需要再映射回菜品库"""
    main_dishes: List[str] = Field(..., alias="mainDishes")
    side_dishes: List[str] = Field(..., alias="sideDishes")
    soups: List[str]
    staples: List[str]
    reason: str

    model_config = {"populate_by_name": True}


class DishRecognitionResult(BaseModel):
    """大模型识别菜品图片后返回的菜品信息"""
    name: str
    estimated_price: float = Field(..., alias="estimatedPrice")
    spicy_level: int = Field(..., alias="spicyLevel", ge=0, le=3)
    is_hot: bool = Field(..., alias="isHot")
    suitable_for_elderly: bool = Field(..., alias="suitableForElderly")
    suitable_for_children: bool = Field(..., alias="suitableForChildren")
    tags: List[str]

    model_config = {"populate_by_name": True}

    def to_dish(self) -> Dish:
        return Dish(
            name=self.name,
            price=max(self.estimated_price, 0),
            tags=self.tags,
            is_hot=self.is_hot,
            spicy_level=self.spicy_level,
            suitable_for_elderly=self.suitable_for_elderly,
            suitable_for_children=self.suitable_for_children,
        )


class DailyMenuRequest(BaseModel):
    """
    配餐请求。config 与 diners 至少提供一个，同时提供时以 config 为准。
    """
    config: Optional[MealConfig] = Field(None, description="就餐人员构成")
    diners: Optional[List[DiningPerson]] = Field(None, description="就餐人员名单 (可选)")
    dishes: Optional[List[Dish]] = Field(None, description="可用菜品列表，不提供时使用服务端菜品库")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="纬度 (可选)")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="经度 (可选)")
    date: Optional[Date] = Field(None, description="配餐日期，默认今天")

    @model_validator(mode="after")
    def config_must_be_consistent(self):
        if self.config is None:
            if not self.diners:
                raise ValueError("必须提供 config 或 diners 之一")
            self.config = MealConfig.from_diners(self.diners)
        if not self.config.is_valid:
            total = self.config.adult_men + self.config.adult_women + self.config.children + self.config.elderly
            raise ValueError(f"总就餐人数 ({self.config.total_people}) 与详细分类的总和 ({total}) 不匹配或为0")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "config": {"total_people": 4, "adult_men": 1, "adult_women": 1, "children": 1, "elderly": 1},
                "latitude": 31.23,
                "longitude": 121.47,
            }
        }
    }


class AIMenuRequest(DailyMenuRequest):
    api_key: Optional[str] = Field(None, description="大模型API Key，不提供时使用服务端配置")


class MenuTaskSubmitResponse(BaseModel):
    task_id: str = Field(..., description="唯一的任务ID")
    status: Literal["PENDING"] = Field("PENDING", description="任务状态")
    result_url: str = Field(..., description="用于查询最终结果的URL")


class MenuResultProcessing(BaseModel):
    task_id: str
    status: Literal["PROCESSING"]


class MenuResultSuccess(BaseModel):
    task_id: str
    status: Literal["SUCCESS"]
    result: DailyMenu


class MenuResultError(BaseModel):
    task_id: str
    status: Literal["FAILED"]
    error_type: str
    error: str


MenuResultResponse = Union[MenuResultSuccess, MenuResultProcessing, MenuResultError]


class SolarTermResponse(BaseModel):
    date: Date
    solar_term: SolarTerm
    estimated_temperature: float
    dietary_suggestion: DietarySuggestion
