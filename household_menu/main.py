# household_menu/main.py
import logging
import uuid
import time
import psutil
from contextlib import asynccontextmanager
from datetime import date as Date
from typing import List, Optional

import httpx
from fastapi import FastAPI, HTTPException, Body, BackgroundTasks, File, Header, Path, Query, UploadFile, Request as FastAPIRequest
from starlette.responses import JSONResponse

from .schemas.menu import (
    AIMenuRequest,
    DailyMenu,
    DailyMenuRequest,
    Dish,
    DishRecognitionResult,
    MenuResultError,
    MenuResultProcessing,
    MenuResultResponse,
    MenuResultSuccess,
    MenuTaskSubmitResponse,
    SolarTermResponse,
)
from .services.ai_service import AIService, EmptyInputError, RecommendationError
from .services.catalog import default_catalog
from .services.solar_term import resolve
from .services.strategies import AIStrategy, DeterministicStrategy
from .services.weather import WeatherCondition, current_weather, fallback_weather
from .core.cache import redis_manager
from .core.config import settings

logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app_state = {}

MENU_GENERATION_PATHS = {"/api/v1/daily-menu", "/api/v1/daily-menu/ai"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("🚀 应用启动中...")
    try:
        redis_manager.initialize()
        if await redis_manager.ping():
            logger.info("✅ Redis 连接测试成功")
        else:
            logger.warning("⚠️ Redis 连接测试失败，AI推荐任务结果将无法保存")
    except Exception as e:
        logger.error(f"❌ Redis 初始化失败: {e}")

    app_state["HTTP_CLIENT"] = httpx.AsyncClient()
    app_state["CATALOG"] = default_catalog(settings.generator.catalog_path or None)
    logger.info(f"✅ 菜品库已就绪，共 {len(app_state['CATALOG'].all_dishes())} 道菜")

    logger.info("🎉 应用已准备就绪!")
    yield

    logger.info("🛑 应用关闭中...")
    await app_state.pop("HTTP_CLIENT").aclose()
    await redis_manager.close()
    logger.info("✅ Redis 连接池已关闭")


api_description = """
家庭智能配餐服务：根据就餐人员、二十四节气和当前天气，从家庭菜品库中推荐今日菜谱。

---

## 🚀 两种推荐方式

1.  **规则配餐** `POST /api/v1/daily-menu`：立即返回菜单。结果带随机性，再次请求即“换一批”。
2.  **AI 推荐** `POST /api/v1/daily-menu/ai`：提交后返回 `task_id`，
    通过 `GET /api/v1/daily-menu/ai/results/{task_id}` 轮询，直到 `status` 变为 `SUCCESS` 或 `FAILED`。

两种方式返回的菜单结构完全相同。未提供经纬度或天气服务不可用时，按当前节气推算天气。
"""

app = FastAPI(
    title="家庭智能配餐 API",
    description=api_description,
    version="1.0.0",
    lifespan=lifespan
)


# 性能熔断中间件
@app.middleware("http")
async def performance_limiter_middleware(request: FastAPIRequest, call_next):
    if request.url.path in MENU_GENERATION_PATHS and request.method == "POST":
        cpu_percent = psutil.cpu_percent(interval=None)
        memory_percent = psutil.virtual_memory().percent

        if cpu_percent > settings.generator.cpu_threshold or memory_percent > settings.generator.memory_threshold:
            logger.warning(f"服务过载，拒绝新请求。CPU: {cpu_percent}%, 内存: {memory_percent}%")
            return JSONResponse(
                status_code=503,
                content={"detail": f"服务当前负载过高，请稍后重试。CPU: {cpu_percent}%, Memory: {memory_percent}%"}
            )

    return await call_next(request)


def _task_result_key(task_id: str) -> str:
    return f"menu_task_result:{task_id}"


def _weather_cache_key(latitude: float, longitude: float) -> str:
    return f"weather_cache:{latitude:.2f}:{longitude:.2f}"


def _dishes_for(request: DailyMenuRequest) -> List[Dish]:
    if request.dishes is not None:
        return request.dishes
    return app_state["CATALOG"].all_dishes()


async def resolve_weather(latitude: Optional[float], longitude: Optional[float], menu_date: Optional[Date] = None) -> WeatherCondition:
    """查询天气，有定位时按坐标缓存；无定位时按配餐日期的节气推算"""
    if latitude is None or longitude is None:
        return fallback_weather(menu_date)

    cache_key = _weather_cache_key(latitude, longitude)
    cached = await redis_manager.get_json(cache_key)
    if cached:
        try:
            return WeatherCondition.model_validate(cached)
        except ValueError:
            logger.warning(f"天气缓存格式不正确，重新查询。Key: {cache_key}")

    weather = await current_weather(latitude, longitude, client=app_state.get("HTTP_CLIENT"))
    await redis_manager.set_json(cache_key, weather.model_dump(mode="json"), ex=settings.weather.cache_ttl_seconds)
    return weather


async def run_ai_menu_task(request: AIMenuRequest, api_key: str, task_id: str):
    """后台执行AI推荐，并把结果写入Redis"""
    task_result_key = _task_result_key(task_id)
    ttl = settings.redis.task_result_ttl_seconds

    try:
        menu_date = request.date or Date.today()
        solar_term = resolve(menu_date)
        weather = await resolve_weather(request.latitude, request.longitude, menu_date)
        dishes = _dishes_for(request)

        service = AIService(api_key=api_key, client=app_state.get("HTTP_CLIENT"))
        strategy = AIStrategy(service, diners=request.diners)
        menu = await strategy.recommend(request.config, dishes, solar_term, weather, today=menu_date)

        result_data = MenuResultSuccess(task_id=task_id, status="SUCCESS", result=menu)
        if await redis_manager.set(task_result_key, result_data.model_dump_json(), ex=ttl):
            logger.info(f"Task {task_id}: AI推荐完成，共 {len(menu.all_dishes)} 道菜。")
        else:
            logger.warning(f"Task {task_id}: 任务完成但无法保存到Redis。")

    except RecommendationError as e:
        logger.warning(f"Task {task_id}: AI推荐失败: {e}")
        error_data = MenuResultError(task_id=task_id, status="FAILED", error_type=type(e).__name__, error=str(e))
        await redis_manager.set(task_result_key, error_data.model_dump_json(), ex=ttl)
    except Exception as e:
        logger.error(f"Task {task_id}: AI推荐任务执行失败: {e}", exc_info=True)
        error_data = MenuResultError(task_id=task_id, status="FAILED", error_type=type(e).__name__, error=str(e))
        await redis_manager.set(task_result_key, error_data.model_dump_json(), ex=ttl)


# --- 主要API端点 ---
@app.get("/api/v1/solar-term", response_model=SolarTermResponse, tags=["Season & Weather"])
async def get_solar_term(date: Optional[Date] = Query(None, description="公历日期，默认今天")):
    target = date or Date.today()
    term = resolve(target)
    return SolarTermResponse(
        date=target,
        solar_term=term,
        estimated_temperature=term.estimated_temperature,
        dietary_suggestion=term.dietary_suggestion,
    )


@app.get("/api/v1/weather", response_model=WeatherCondition, tags=["Season & Weather"])
async def get_weather(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
):
    return await resolve_weather(latitude, longitude)


@app.get("/api/v1/dishes", response_model=List[Dish], tags=["Catalog"])
async def list_dishes():
    return app_state["CATALOG"].all_dishes()


@app.post("/api/v1/daily-menu", response_model=DailyMenu, tags=["Menu Planning"])
async def create_daily_menu(request: DailyMenuRequest = Body(...)):
    """规则配餐，立即返回菜单"""
    dishes = _dishes_for(request)
    menu_date = request.date or Date.today()
    solar_term = resolve(menu_date)
    weather = await resolve_weather(request.latitude, request.longitude, menu_date)
    logger.info(f"收到配餐请求: 人数={request.config.total_people}, 节气={solar_term.value}, 菜品数量={len(dishes)}")

    return await DeterministicStrategy().recommend(request.config, dishes, solar_term, weather, today=menu_date)


@app.post("/api/v1/daily-menu/ai", response_model=MenuTaskSubmitResponse, tags=["Menu Planning (AI)"])
async def submit_ai_menu(
    fastapi_request: FastAPIRequest,
    background_tasks: BackgroundTasks,
    request: AIMenuRequest = Body(...),
):
    """提交AI推荐任务（异步模式）"""
    api_key = request.api_key or settings.ai.api_key
    if not api_key:
        raise HTTPException(status_code=400, detail="未配置大模型API Key。")
    if not _dishes_for(request):
        raise HTTPException(status_code=400, detail=str(EmptyInputError("菜品列表为空")))

    task_id = str(uuid.uuid4())
    processing_marker = MenuResultProcessing(task_id=task_id, status="PROCESSING").model_dump_json()
    if not await redis_manager.set(_task_result_key(task_id), processing_marker, ex=settings.redis.task_result_ttl_seconds):
        raise HTTPException(status_code=503, detail="服务暂时不可用，请稍后重试。")

    background_tasks.add_task(run_ai_menu_task, request, api_key, task_id)
    result_url = fastapi_request.url_for('get_ai_menu_result', task_id=task_id)
    logger.info(f"已创建AI推荐任务: {task_id}")
    return MenuTaskSubmitResponse(task_id=task_id, status="PENDING", result_url=str(result_url))


@app.get("/api/v1/daily-menu/ai/results/{task_id}", response_model=MenuResultResponse, tags=["Menu Planning (AI)"])
async def get_ai_menu_result(task_id: str = Path(..., description="提交任务时获取的Task ID")):
    result_data = await redis_manager.get_json(_task_result_key(task_id))
    if not result_data:
        return MenuResultProcessing(task_id=task_id, status="PROCESSING")
    return result_data


@app.post("/api/v1/dishes/recognize", response_model=DishRecognitionResult, tags=["Catalog"])
async def recognize_dish(
    image: UploadFile = File(...),
    api_key: Optional[str] = Header(None, alias="X-API-Key", description="大模型API Key，不提供时使用服务端配置"),
):
    """识别菜品照片，返回可直接录入菜品库的信息"""
    key = api_key or settings.ai.api_key
    if not key:
        raise HTTPException(status_code=400, detail="未配置大模型API Key。")

    service = AIService(api_key=key, client=app_state.get("HTTP_CLIENT"))
    try:
        return await service.recognize_dish(await image.read())
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecommendationError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/health", tags=["Health Check"])
async def health_check():
    redis_status = await redis_manager.get_connection_status()
    redis_ping = await redis_manager.ping()
    return {
        "status": "ok" if redis_ping else "degraded",
        "message": "欢迎使用家庭智能配餐 API v1.0",
        "redis": {
            "connected": redis_ping,
            "status": redis_status
        },
        "timestamp": time.time()
    }


@app.get("/", tags=["Health Check"])
def read_root():
    return {"status": "ok", "message": "欢迎使用家庭智能配餐 API v1.0"}
