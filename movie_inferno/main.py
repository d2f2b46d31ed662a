from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from movie_inferno.api.routes import admin, chatbot, content, database, health, sync
from movie_inferno.config import get_settings
from movie_inferno.core.database import get_database_client
from movie_inferno.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    movie_inferno_exception_handler,
    validation_exception_handler,
)
from movie_inferno.logger import logger
from movie_inferno.utils.exceptions import DatabaseException, MovieInfernoException

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 初始化数据库表
    db = get_database_client()
    try:
        db.create_tables()
    except DatabaseException:
        logger.exception("Database initialization failed")
        raise
    logger.info(f"Movie Inferno 启动完成 (env={settings.app_env}, db={db.engine.dialect.name})")
    try:
        yield
    finally:
        db.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="Movie Inferno", version=settings.app_version, lifespan=lifespan)

    prefix = settings.api_prefix
    app.include_router(health.router, prefix=prefix)
    app.include_router(sync.router, prefix=prefix)
    app.include_router(chatbot.router, prefix=prefix)
    app.include_router(content.router, prefix=prefix)
    app.include_router(admin.router, prefix=prefix)
    app.include_router(database.router, prefix=prefix)

    # 注册异常处理器
    app.add_exception_handler(MovieInfernoException, movie_inferno_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    @app.get("/")
    async def root() -> Dict[str, str]:
        return {"name": "Movie Inferno API", "version": settings.app_version, "docs": "/docs"}

    return app


app = create_app()
