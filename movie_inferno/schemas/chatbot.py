from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    # 缺失或为空由服务层返回 400 "Message is required"
    message: Optional[str] = Field(None, max_length=2000)


class ChatResponse(BaseModel):
    response: str
    movies: List[Dict[str, Any]] = []
    tvShows: List[Dict[str, Any]] = []
