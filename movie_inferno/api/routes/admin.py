from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db, require_admin
from movie_inferno.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def get_admin_service(db: DatabaseClient = Depends(get_db)) -> AdminService:
    return AdminService(db)


@router.get("/stats")
async def admin_stats(service: AdminService = Depends(get_admin_service)):
    return service.stats()


@router.get("/activity")
async def admin_activity(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: AdminService = Depends(get_admin_service),
):
    return service.activity(limit=limit, offset=offset)


@router.get("/export")
async def admin_export(
    table: str = Query(..., min_length=1),
    format: str = Query("json"),
    service: AdminService = Depends(get_admin_service),
):
    content, filename = service.export(table, format)
    if format == "csv":
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return {"table": table, "filename": filename, "rows": content, "total": len(content)}


@router.post("/setup-db")
async def setup_db(service: AdminService = Depends(get_admin_service)):
    return service.setup_database()
