# household_menu/services/ai_service.py
import base64
import json
import logging
from datetime import date as Date
from typing import Any, Dict, Iterable, Optional, Set, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import settings, AIConfig
from ..schemas.diner import DiningPerson
from ..schemas.meal_config import MealConfig
from ..schemas.menu import DailyMenu, DishRecognitionResult, MenuRecommendationResult, deduplicate_dishes
from .catalog import DishNameResolver
from .solar_term import SolarTerm
from .weather import WeatherCondition

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class RecommendationError(Exception):
    """AI推荐/识别失败的基类"""
    message = "AI 推荐失败"

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"{self.message}：{detail}" if detail else self.message)


class EmptyInputError(RecommendationError):
    message = "输入内容为空"


class NetworkFailureError(RecommendationError):
    message = "网络错误"

    def __init__(self, detail: str = "", status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(detail)


class InvalidResponseEnvelopeError(RecommendationError):
    message = "AI 返回了无效的响应"


class RecommendationParseError(RecommendationError):
    message = "解析错误"


DISH_RECOGNITION_PROMPT = """请识别这张图片中的菜品，并以纯JSON格式返回以下信息，不要包含任何markdown标记或额外说明：
{
  "name": "菜品名称",
  "estimatedPrice": 预估价格（数字，单位元）,
  "spicyLevel": 辣度（0=不辣，1=微辣，2=中辣，3=重辣）,
  "isHot": 是否热菜（true/false）,
  "suitableForElderly": 是否适合老人（true/false）,
  "suitableForChildren": 是否适合儿童（true/false）,
  "tags": ["标签1", "标签2"]
}
只返回JSON，不要有其他内容。"""

MENU_PROMPT_TEMPLATE = """你是一位专业的中餐营养师。请根据以下信息，从可用菜品中推荐今日菜谱。

【就餐人数】{party}
【天气】{weather}
【节气】{solar_term}
【饮食建议】{suggestion}
{taste_section}{constraint_section}
【可用菜品列表】
{catalog_text}

请推荐合理搭配的菜谱，注意：
1. 有儿童时避免重辣菜品
2. 有老人时注意清淡易消化
3. 根据天气和节气调整冷热搭配
4. 荤素搭配均衡

以纯JSON格式返回，不要包含markdown标记或额外说明：
{{
  "mainDishes": ["主菜名1", "主菜名2"],
  "sideDishes": ["副菜名1"],
  "soups": ["汤品名"],
  "staples": ["主食名"],
  "reason": "推荐理由（一句话）"
}}
菜名必须从上面的可用菜品列表中选择，只返回JSON。"""


def strip_markdown(text: str) -> str:
    """去掉大模型可能包裹的 ```json ... ``` 代码块标记"""
    return text.replace("```json", "").replace("```", "").strip()


def build_menu_prompt(
    catalog_text: str,
    config: MealConfig,
    weather: WeatherCondition,
    solar_term: SolarTerm,
    diners: Optional[Iterable[DiningPerson]] = None,
) -> str:
    taste_lines = [f"{d.name}：{d.taste_description}" for d in (diners or [])]
    taste_section = f"【口味偏好】{'；'.join(taste_lines)}\n" if taste_lines else ""
    constraints = config.dietary_constraints
    constraint_section = f"【注意事项】{'；'.join(constraints)}\n" if constraints else ""
    return MENU_PROMPT_TEMPLATE.format(
        party=config.describe(),
        weather=weather.summary,
        solar_term=solar_term.value,
        suggestion=solar_term.dietary_suggestion.description,
        taste_section=taste_section,
        constraint_section=constraint_section,
        catalog_text=catalog_text,
    )


def parse_result(content: str, model: Type[ResultT]) -> ResultT:
    cleaned = strip_markdown(content)
    try:
        return model.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        raise RecommendationParseError(f"JSON 解析失败：{e}") from e


def build_daily_menu(
    result: MenuRecommendationResult,
    resolver: DishNameResolver,
    weather: WeatherCondition,
    solar_term: SolarTerm,
    today: Optional[Date] = None,
) -> DailyMenu:
    """
    把大模型给出的菜名映射回菜品库，组装成与配餐引擎相同结构的菜单。
    菜品库中不存在的菜名直接丢弃，重复的菜名只保留第一次出现；总价按菜品库价格重新计算。
    """
    used_names: Set[str] = set()
    mains = deduplicate_dishes(resolver.resolve_all(result.main_dishes), used_names)
    sides = deduplicate_dishes(resolver.resolve_all(result.side_dishes), used_names)
    soups = deduplicate_dishes(resolver.resolve_all(result.soups), used_names)
    staples = deduplicate_dishes(resolver.resolve_all(result.staples), used_names)
    all_selected = mains + sides + soups + staples

    return DailyMenu(
        date=today or Date.today(),
        main_dishes=mains,
        side_dishes=sides,
        soups=soups,
        staples=staples,
        solar_term=solar_term,
        solar_term_description=result.reason,
        weather_description=weather.dietary_preference.description,
        total_price=sum(d.price for d in all_selected),
    )


class AIService:
    """
    对话补全接口的客户端：菜谱推荐与菜品图片识别。
    每次调用只发一次请求，失败不重试，错误以 RecommendationError 子类抛出。
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[AIConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or settings.ai
        self.api_key = api_key or self.config.api_key
        self.client = client

    async def recommend(
        self,
        catalog_text: str,
        config: MealConfig,
        weather: WeatherCondition,
        solar_term: SolarTerm,
        diners: Optional[Iterable[DiningPerson]] = None,
    ) -> MenuRecommendationResult:
        if not catalog_text.strip():
            raise EmptyInputError("菜品列表为空")

        prompt = build_menu_prompt(catalog_text, config, weather, solar_term, diners)
        body = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        content = await self._send_request(body)
        result = parse_result(content, MenuRecommendationResult)
        logger.info(
            f"✅ AI推荐完成: 主菜{len(result.main_dishes)} 副菜{len(result.side_dishes)} "
            f"汤{len(result.soups)} 主食{len(result.staples)}"
        )
        return result

    async def recognize_dish(self, image_data: bytes) -> DishRecognitionResult:
        if not image_data:
            raise EmptyInputError("图片数据为空")

        data_url = f"data:image/jpeg;base64,{base64.b64encode(image_data).decode('ascii')}"
        body = {
            "model": self.config.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": data_url}},
                        {"type": "text", "text": DISH_RECOGNITION_PROMPT},
                    ],
                }
            ],
        }
        content = await self._send_request(body)
        return parse_result(content, DishRecognitionResult)

    async def _post(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            self.config.base_url,
            json=body,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            timeout=self.config.timeout_seconds,
        )

    async def _send_request(self, body: Dict[str, Any]) -> str:
        logger.info(f"📞 正在调用大模型: {body['model']}")
        try:
            if self.client is None:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, body)
            else:
                response = await self._post(self.client, body)
        except httpx.RequestError as e:
            logger.error(f"🚨 调用大模型时发生网络错误: {e!r}")
            raise NetworkFailureError(str(e) or type(e).__name__) from e

        if not 200 <= response.status_code < 300:
            logger.error(f"🚨 大模型接口返回HTTP错误: {response.status_code}")
            raise NetworkFailureError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            envelope = response.json()
            content = envelope["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise InvalidResponseEnvelopeError(f"{type(e).__name__}: {e}") from e

        if not isinstance(content, str):
            raise InvalidResponseEnvelopeError("content 不是字符串")
        return content
