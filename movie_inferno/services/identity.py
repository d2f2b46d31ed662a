"""
外部身份提供方客户端。

只负责把调用方的 Authorization / Cookie 转发到 {IDENTITY_PROVIDER_URL}/session，
读取 {"user": {"id": ..., "role": ...}}；登录、注册等流程不在本服务内。
"""
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from fastapi import Request

from movie_inferno.logger import logger

FORWARDED_HEADERS = ("authorization", "cookie")


@dataclass
class SessionUser:
    id: Any
    role: Optional[str] = None
    email: Optional[str] = None


class IdentityClient:
    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get_session(self, request: Request) -> Optional[SessionUser]:
        """未配置身份提供方、没有凭据或会话无效时返回 None（匿名）。"""
        if not self.base_url:
            return None
        headers = {name: request.headers[name] for name in FORWARDED_HEADERS if name in request.headers}
        if not headers:
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"{self.base_url}/session", headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(f"身份服务请求失败: {exc}")
            return None

        if resp.status_code != 200:
            logger.debug(f"身份服务返回 HTTP {resp.status_code}，按匿名处理")
            return None
        try:
            data = resp.json() or {}
        except ValueError:
            logger.warning("身份服务返回了非 JSON 响应")
            return None

        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict) or user.get("id") is None:
            return None
        return SessionUser(id=user["id"], role=user.get("role"), email=user.get("email"))
