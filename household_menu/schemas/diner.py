# household_menu/schemas/diner.py

from pydantic import BaseModel, Field


class DiningPerson(BaseModel):
    """家庭成员及其口味偏好"""
    name: str = Field(..., min_length=1, description="称呼")
    emoji: str = Field("😀", description="头像")
    likes_spicy: bool = False
    likes_sour: bool = False
    likes_sweet: bool = False
    likes_light: bool = False
    dislikes_spicy: bool = False
    dislikes_sour: bool = False
    dislikes_sweet: bool = False
    dislikes_oily: bool = False
    is_child: bool = False
    is_elderly: bool = False
    notes: str = ""

    @property
    def taste_description(self) -> str:
        flags = [
            (self.likes_spicy, "爱辣"),
            (self.likes_sour, "爱酸"),
            (self.likes_sweet, "爱甜"),
            (self.likes_light, "爱清淡"),
            (self.dislikes_spicy, "忌辣"),
            (self.dislikes_sour, "忌酸"),
            (self.dislikes_sweet, "忌甜"),
            (self.dislikes_oily, "忌油腻"),
            (self.is_child, "儿童"),
            (self.is_elderly, "老人"),
        ]
        parts = [label for enabled, label in flags if enabled]
        return "、".join(parts) if parts else "无特殊偏好"
