from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from movie_inferno.config import Settings
from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db, get_settings_dep, get_tmdb_client
from movie_inferno.schemas.database import SyncResponse
from movie_inferno.services.sync_service import SyncPipeline
from movie_inferno.tmdb import TmdbClient

router = APIRouter(tags=["sync"])


@router.get("/sync", response_model=SyncResponse)
async def sync_tmdb(
    settings: Settings = Depends(get_settings_dep),
    db: DatabaseClient = Depends(get_db),
    tmdb: TmdbClient = Depends(get_tmdb_client),
):
    """从 TMDB 拉取片库并写入数据库，可重复执行。"""
    summary = await SyncPipeline(tmdb, db, settings).run()
    return SyncResponse(
        message="TMDB data sync completed",
        timestamp=datetime.now(timezone.utc).isoformat(),
        status="completed",
        tables_populated=summary.tables_populated,
        summary=summary.to_dict(),
    )
