"""
FastAPI应用入口点
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import settings
from app.core import (
    setup_logging,
    RequestLoggingMiddleware,
    ExceptionHandlingMiddleware,
    LectureScribeException,
    ConfigurationException,
    api_logger
)
from app.core.exceptions import lecturescribe_exception_to_http_exception
from app.db.init_db import init_database
from app.services.ai import init_ai_service
from app.services.note import get_note_autosaver


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时初始化
    api_logger.info("Starting LectureScribe API...")

    try:
        # 初始化数据库
        await init_database()
        api_logger.info("Database initialized successfully")
    except Exception as e:
        api_logger.error(f"Failed to initialize application: {e}")
        raise

    try:
        # 初始化AI服务
        init_ai_service(settings.ai_config)
        api_logger.info("AI service initialized successfully")
    except ConfigurationException as e:
        api_logger.warning(f"AI service disabled: {e.message}")

    api_logger.info("LectureScribe API started successfully")

    yield

    # 关闭时清理
    api_logger.info("Shutting down LectureScribe API...")

    try:
        # 写入尚未保存的自动保存内容
        await get_note_autosaver().flush_all()
        api_logger.info("Pending autosaves flushed")
    except Exception as e:
        api_logger.error(f"Error flushing autosaves: {e}")

    api_logger.info("LectureScribe API shutdown completed")


# 设置日志
setup_logging()

# 创建FastAPI应用实例
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="LectureScribe lecture transcription and notes API",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# 添加中间件（注意顺序很重要）
app.add_middleware(ExceptionHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# 配置CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LectureScribeException)
async def lecturescribe_exception_handler(request: Request, exc: LectureScribeException):
    """业务异常转为JSON错误响应"""
    http_exc = lecturescribe_exception_to_http_exception(exc)
    api_logger.error(f"{type(exc).__name__} [{exc.code}] on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=http_exc.status_code, content=http_exc.detail)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "Welcome to LectureScribe API",
        "version": settings.app_version,
        "docs_url": "/docs" if settings.debug else None
    }


@app.get("/health")
async def health_check():
    """简单健康检查"""
    return {"status": "healthy", "version": settings.app_version}


# 导入路由
from app.api.v1.api import api_router
from app.api.v1.endpoints import files

app.include_router(api_router, prefix="/api/v1")
app.include_router(files.router, tags=["files"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug"
    )
