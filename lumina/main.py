#!/usr/bin/env python3
"""
Lumina Study Buddy - FastAPI 主应用入口
Description: REST API 提供会话、学习日志、进度、练习与生成功能，WebSocket 提供实时语音辅导
"""

import logging
import platform
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psutil
import uvicorn

from lumina.config.settings import settings
from lumina.utils.logger import setup_logging
from lumina.utils.database import init_db, check_db_connection
from lumina.utils.errors import LuminaError, NetworkError, ValidationError
from lumina.utils.helpers import RequestSequencer, format_timestamp
from lumina.utils.llm_client import LLMClient
from lumina.utils.gemini_client import GeminiClient
from lumina.agents.live_connector import GeminiLiveConnector
from lumina.services.practice_service import PracticeService
from lumina.services.generation_service import GenerationService
from lumina.api.websocket_manager import websocket_manager
from lumina.api.routes import auth, users, logs, progress, practice, generate, classroom, tutor

# 设置日志
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时初始化数据库和生成类服务
    - 关闭时清理WebSocket连接
    """
    logger.info("初始化 Lumina Study Buddy...")

    try:
        init_db()
        logger.info("数据库初始化完成")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    # 同一档案同一功能的请求共用一个序号分配器
    sequencer = RequestSequencer()
    app.state.llm_client = None
    app.state.practice_service = None
    app.state.generation_service = None
    app.state.live_connector = None

    try:
        app.state.llm_client = LLMClient()
        app.state.practice_service = PracticeService(app.state.llm_client, sequencer)
    except Exception as e:
        logger.warning(f"LLM客户端初始化失败: {e}，测验与练习卷功能将不可用")

    try:
        app.state.generation_service = GenerationService(GeminiClient(), sequencer)
        app.state.live_connector = GeminiLiveConnector()
    except Exception as e:
        logger.warning(f"Gemini客户端初始化失败: {e}，生成与语音辅导功能将不可用")

    logger.info("Lumina Study Buddy 启动完成")

    yield  # 应用运行期间

    logger.info("正在关闭 Lumina Study Buddy...")
    await websocket_manager.close_all()
    logger.info("Lumina Study Buddy 已安全关闭")


def create_application() -> FastAPI:
    """创建并配置FastAPI应用实例"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="AI study companion for Year 1-11 students",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request, exc):
        return JSONResponse(
            status_code=422,
            content={"error": exc.message}
        )

    @app.exception_handler(NetworkError)
    async def network_error_handler(request, exc):
        return JSONResponse(
            status_code=502,
            content={"error": exc.message, "retryable": True}
        )

    @app.exception_handler(LuminaError)
    async def lumina_error_handler(request, exc):
        return JSONResponse(
            status_code=400,
            content={"error": exc.message}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    # 注册API路由
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["会话"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["用户"])
    app.include_router(logs.router, prefix="/api/v1/logs", tags=["学习日志"])
    app.include_router(progress.router, prefix="/api/v1/progress", tags=["进度"])
    app.include_router(practice.router, prefix="/api/v1/practice", tags=["练习"])
    app.include_router(generate.router, prefix="/api/v1/generate", tags=["生成"])
    app.include_router(classroom.router, prefix="/api/v1/classroom", tags=["班级"])
    # WebSocket路由
    app.include_router(tutor.router)

    return app


# 创建应用实例
app = create_application()


# 健康检查端点
@app.get("/")
async def root():
    """根端点 - 服务状态检查"""
    return {
        "status": "running",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": format_timestamp()
    }


@app.get("/health")
async def health_check():
    """健康检查端点"""
    db_status = check_db_connection()

    llm_client = getattr(app.state, "llm_client", None)
    llm_status = await llm_client.check_connection() if llm_client else False

    status = "healthy" if db_status and llm_status else "unhealthy"

    return {
        "status": status,
        "database": "connected" if db_status else "disconnected",
        "llm_service": "connected" if llm_status else "disconnected",
        "timestamp": format_timestamp()
    }


@app.get("/api/v1/system/info")
async def system_info():
    """系统信息端点"""
    return {
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "cpu_usage": psutil.cpu_percent(),
        "memory_usage": psutil.virtual_memory().percent,
        "active_sessions": websocket_manager.get_connection_count(),
        "text_model": settings.TEXT_MODEL,
        "live_model": settings.LIVE_MODEL,
        "transcript_limit": settings.TRANSCRIPT_LIMIT,
    }


if __name__ == "__main__":
    """开发环境直接运行"""
    uvicorn.run(
        "lumina.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # 开发模式热重载
        log_level="info",
        ws_ping_interval=settings.WEBSOCKET_PING_INTERVAL,
        ws_ping_timeout=settings.WEBSOCKET_PING_TIMEOUT,
        timeout_keep_alive=5,
    )
