# household_menu/schemas/meal_config.py

from pydantic import BaseModel, Field
from typing import List, Iterable

from .diner import DiningPerson


class MealConfig(BaseModel):
    """
    就餐人员构成，以及由此推导出的配餐约束。
    total_people 必须等于各类人数之和，由调用方保证，配餐引擎不做校验。
    """
    total_people: int = Field(2, ge=0, description="总就餐人数")
    adult_men: int = Field(1, ge=0, description="成年男性数量")
    adult_women: int = Field(1, ge=0, description="成年女性数量")
    children: int = Field(0, ge=0, description="儿童数量")
    elderly: int = Field(0, ge=0, description="老人数量")

    @property
    def is_valid(self) -> bool:
        return (
            self.total_people == self.adult_men + self.adult_women + self.children + self.elderly
            and self.total_people > 0
        )

    @property
    def has_children(self) -> bool:
        return self.children > 0

    @property
    def has_elderly(self) -> bool:
        return self.elderly > 0

    @property
    def max_spicy_level(self) -> int:
        if self.has_children:
            return 1
        if self.has_elderly:
            return 2
        return 3

    @property
    def dish_count(self) -> int:
        """菜品数量（不含汤和主食），按人数分档"""
        people = self.total_people
        if people == 1:
            return 2
        if people == 2:
            return 3
        if people == 3:
            return 4
        if 4 <= people <= 5:
            return 5
        if 6 <= people <= 7:
            return 7
        return 8

    @property
    def soup_count(self) -> int:
        return 2 if self.total_people >= 6 else 1

    @property
    def dietary_constraints(self) -> List[str]:
        notes = []
        if self.children > 0:
            notes.append("有儿童，避免辛辣")
        if self.elderly > 0:
            notes.append("有老人，建议少油少盐")
        if self.total_people >= 6:
            notes.append("人数较多，建议增加汤品")
        return notes

    def describe(self) -> str:
        return (
            f"成年男性{self.adult_men}人，成年女性{self.adult_women}人，"
            f"儿童{self.children}人，老人{self.elderly}人"
        )

    @classmethod
    def from_diners(cls, diners: Iterable[DiningPerson], adult_women: int = 0) -> "MealConfig":
        """
        根据就餐人员名单生成配置。名单不记录性别，
        既非儿童也非老人的成员中 adult_women 位计为成年女性，其余计为成年男性。
        """
        diners = list(diners)
        children = sum(1 for d in diners if d.is_child)
        elderly = sum(1 for d in diners if d.is_elderly and not d.is_child)
        adults = len(diners) - children - elderly
        women = min(adult_women, adults)
        return cls(
            total_people=len(diners),
            adult_men=adults - women,
            adult_women=women,
            children=children,
            elderly=elderly,
        )
