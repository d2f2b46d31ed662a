import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from movie_inferno.config import Settings
from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db, get_settings_dep
from movie_inferno.logger import logger
from movie_inferno.utils.exceptions import DatabaseException

router = APIRouter(tags=["health"])

STARTED_AT = time.monotonic()


@router.get("/health")
async def health(
    settings: Settings = Depends(get_settings_dep),
    db: DatabaseClient = Depends(get_db),
):
    start = time.monotonic()
    try:
        database = db.ping()
        db_ok = True
    except DatabaseException as exc:
        logger.error(f"健康检查: 数据库不可用 - {exc.message}")
        database = {"connected": False, "error": exc.message}
        db_ok = False

    body = {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "responseTime": f"{round((time.monotonic() - start) * 1000)}ms",
        "application": {
            "version": settings.app_version,
            "environment": settings.app_env,
            "uptime": round(time.monotonic() - STARTED_AT, 3),
        },
        "database": database,
        "checks": {
            "database": "pass" if db_ok else "fail",
            "tmdb_api_key": "pass" if settings.tmdb_api_key else "warn",
        },
    }
    return JSONResponse(status_code=200 if db_ok else 503, content=body)


@router.get("/health/database")
async def health_database(db: DatabaseClient = Depends(get_db)):
    start = time.monotonic()
    try:
        database = db.ping()
        database["tables"] = {name: db.table(name).count().count for name in db.table_names}
    except DatabaseException as exc:
        logger.error(f"数据库健康检查失败: {exc.message}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": exc.message,
                "database": {"connected": False, "error": exc.message},
            },
        )
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "responseTime": f"{round((time.monotonic() - start) * 1000)}ms",
        "database": database,
    }
