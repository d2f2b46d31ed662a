"""
通用读写接口，全部经过查询构造器：表名、列名必须在模型中声明，值一律参数绑定。
"""
import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from pydantic import TypeAdapter, ValidationError

from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db
from movie_inferno.schemas.database import ColumnFilter, DatabaseResponse, InsertRequest
from movie_inferno.utils.exceptions import ValidationException

router = APIRouter(prefix="/database", tags=["database"])

filters_adapter = TypeAdapter(List[ColumnFilter])


def parse_filters(raw: Optional[str]) -> List[ColumnFilter]:
    if not raw:
        return []
    try:
        return filters_adapter.validate_python(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise ValidationException(f"Invalid filters: {exc}", "filters") from exc


@router.get("/select", response_model=DatabaseResponse)
async def select(
    table: str = Query(..., min_length=1),
    columns: str = Query("*"),
    order_by: Optional[str] = Query(None, alias="orderBy"),
    ascending: bool = Query(False),
    limit: Optional[int] = Query(None, ge=0, le=1000),
    filters: Optional[str] = Query(None),
    db: DatabaseClient = Depends(get_db),
):
    query = db.table(table).select(columns)
    for item in parse_filters(filters):
        query = query.eq(item.column, item.value)
    if order_by:
        query = query.order(order_by, ascending=ascending)
    if limit is not None:
        query = query.limit(limit)
    result = query.execute()
    return DatabaseResponse(data=jsonable_encoder(result.data), count=result.count)


@router.post("/insert", response_model=DatabaseResponse)
async def insert(payload: InsertRequest, db: DatabaseClient = Depends(get_db)):
    if not payload.table or not payload.data:
        raise ValidationException("Table and data parameters are required")
    result = db.table(payload.table).insert(payload.data)
    return DatabaseResponse(data=jsonable_encoder(result.data), count=result.count)
