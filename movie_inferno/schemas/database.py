from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ColumnFilter(BaseModel):
    column: str = Field(..., min_length=1)
    value: Any = None


class InsertRequest(BaseModel):
    table: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class DatabaseResponse(BaseModel):
    data: Any = None
    count: int = 0
    error: Optional[str] = None


class SyncResponse(BaseModel):
    message: str
    timestamp: str
    status: str
    tables_populated: List[str] = []
    summary: Dict[str, Any] = {}
