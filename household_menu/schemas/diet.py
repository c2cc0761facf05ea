# household_menu/schemas/diet.py

from pydantic import BaseModel, Field


class DietarySuggestion(BaseModel):
    """
    饮食建议。节气和天气各自独立产出一份，结构相同。
    """
    prefer_hot: bool = Field(..., description="宜热食")
    prefer_soup: bool = Field(..., description="宜汤水")
    prefer_light: bool = Field(..., description="宜清淡")
    prefer_cold: bool = Field(..., description="宜凉菜消暑")
    description: str = Field(..., description="给人看的建议文字")

    model_config = {"frozen": True}
