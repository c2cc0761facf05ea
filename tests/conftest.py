"""
测试配置文件
提供测试所需的fixtures
"""

import json
import random
from contextlib import asynccontextmanager

import httpx
import pytest

from household_menu.core.cache import RedisManager
from household_menu.schemas.meal_config import MealConfig
from household_menu.schemas.menu import Dish
from household_menu.services.catalog import default_catalog


class FakeRedisClient:
    """内存版 Redis 客户端，只实现用到的命令"""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None, nx=False, **kwargs):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def ping(self):
        return True


class FakeRedisManager(RedisManager):
    """复用 RedisManager 的重试与JSON逻辑，只替换底层连接"""

    def __init__(self):
        super().__init__()
        self.client = FakeRedisClient()

    def initialize(self):
        self.pool = "fake-pool"

    async def close(self):
        self.pool = None

    @asynccontextmanager
    async def _client(self):
        yield self.client


@pytest.fixture
def fake_redis():
    return FakeRedisManager()


@pytest.fixture
def dish_factory():
    """快速构造菜品"""
    def _make(name, price=10.0, tags=("热菜", "素菜"), is_hot=True, spicy_level=0,
              suitable_for_elderly=True, suitable_for_children=True):
        return Dish(
            name=name,
            price=price,
            tags=list(tags),
            is_hot=is_hot,
            spicy_level=spicy_level,
            suitable_for_elderly=suitable_for_elderly,
            suitable_for_children=suitable_for_children,
        )
    return _make


@pytest.fixture
def seed_dishes():
    """内置的家常菜品库"""
    return default_catalog().all_dishes()


@pytest.fixture
def rng():
    return random.Random(20240601)


@pytest.fixture
def two_adults():
    return MealConfig(total_people=2, adult_men=1, adult_women=1)


@pytest.fixture
def family_with_child():
    return MealConfig(total_people=3, adult_men=1, adult_women=1, children=1, elderly=0)


@pytest.fixture
def family_with_elderly():
    return MealConfig(total_people=4, adult_men=1, adult_women=1, children=0, elderly=2)


def _chat_completion(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"choices": [{"message": {"content": content}}]})


@pytest.fixture
def chat_completion():
    """构造对话补全接口的响应"""
    return _chat_completion


@pytest.fixture
def completion_payload():
    return {
        "mainDishes": ["红烧肉", "清蒸鲈鱼"],
        "sideDishes": ["蒜蓉西兰花", "不存在的菜"],
        "soups": ["玉米排骨汤"],
        "staples": ["蛋炒饭"],
        "reason": "冬季宜温补，荤素搭配均衡",
    }


@pytest.fixture
def ai_transport(completion_payload):
    """
    返回 (transport, requests)。transport 回复 completion_payload，requests 记录收到的请求。
    """
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return _chat_completion(json.dumps(completion_payload, ensure_ascii=False))

    return httpx.MockTransport(handler), requests
