import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException as FastAPIHTTPException
from sqlalchemy import text

from layout_manager.core.config import settings
from layout_manager.core.database import init_db, close_db, engine
from layout_manager.core.response import ResponseModel
from layout_manager.core.middleware import RequestIDAndAuditMiddleware
from layout_manager.routers import layouts
from layout_manager.routers.mcp_tools import handle_streamable_http, session_manager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# 定义 OpenAPI 标签，用于 Swagger UI 中的分组展示
tags_metadata = [
    {
        "name": "管理接口 > 布局管理",
        "description": "布局列表、详情、激活、删除与组件类型查询",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时建表并连接 Redis，运行 MCP 会话管理器；关闭时释放连接"""
    await init_db()
    async with session_manager.run():
        logger.info("%s started, MCP endpoint mounted at /mcp", settings.APP_NAME)
        yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="响应式仪表盘布局管理服务：以 MCP 工具方式提供组件查找、增删、移动、缩放与布局分析",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# 请求 ID + 变更审计日志（先添加的后执行，故先于 CORS 接触请求）
app.add_middleware(RequestIDAndAuditMiddleware)
# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)


def _cors_headers(request: Request) -> dict:
    origin = request.headers.get("origin")
    headers = {}
    if origin and (origin in settings.CORS_ORIGINS or "*" in settings.CORS_ORIGINS):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


# HTTPException 异常处理器
@app.exception_handler(FastAPIHTTPException)
async def http_exception_handler(request: Request, exc: FastAPIHTTPException):
    """HTTP 异常处理"""
    response = ResponseModel.error_response(
        message=exc.detail,
        code=exc.status_code
    )
    headers = dict(exc.headers) if exc.headers else {}
    # 确保包含 CORS 头
    headers.update(_cors_headers(request))

    return JSONResponse(
        content=response.model_dump(exclude_none=True),
        status_code=exc.status_code,
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求验证异常处理"""
    errors = exc.errors()
    error_messages = [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in errors]
    message = "请求参数验证失败: " + "; ".join(error_messages)
    response = ResponseModel.error_response(
        message=message,
        code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        data={"errors": error_messages}
    )
    return JSONResponse(
        content=response.model_dump(exclude_none=True),
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        headers=_cors_headers(request)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常处理：仅打日志，不对前端暴露堆栈或异常内容"""
    logger.exception("未捕获异常")
    response = ResponseModel.error_response(
        message="服务器内部错误",
        code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(
        content=response.model_dump(exclude_none=True),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=_cors_headers(request)
    )


# 注册路由
app.include_router(layouts.router, prefix="/admin")
# MCP streamable HTTP
app.mount("/mcp", app=handle_streamable_http)


@app.get("/")
async def root():
    """根路径"""
    return ResponseModel.success_response(
        data={"message": settings.APP_NAME, "version": "1.0.0", "mcp": "/mcp/"},
        message="服务运行正常"
    )


@app.get("/health")
async def health_check():
    """健康检查：数据库与 Redis 连通性"""
    db_ok = "ok"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_ok = "unavailable"

    redis_ok = "ok"
    if not settings.REDIS_ENABLED:
        redis_ok = "disabled"
    else:
        try:
            from layout_manager.core.database import redis_client
            if redis_client:
                await redis_client.ping()
            else:
                redis_ok = "unavailable"
        except Exception:
            redis_ok = "unavailable"

    # Redis 仅作缓存，不可用时服务降级但仍可工作
    healthy = db_ok == "ok" and redis_ok in ("ok", "disabled")
    return ResponseModel.success_response(
        data={
            "status": "healthy" if healthy else "degraded",
            "database": db_ok,
            "redis": redis_ok,
        },
        message="服务健康" if healthy else "数据库或 Redis 不可用"
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.MCP_HOST, port=settings.MCP_PORT)
