from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_incrementing

from .config import get_settings
from .logger import logger
from .utils.exceptions import TMDBException, TMDBTransientError

POSTER_SIZE = "w500"
BACKDROP_SIZE = "w1280"
DEFAULT_LANG = "en-US"


class TmdbClient:
    """
    TMDB 只读客户端。

    每次请求前按固定间隔节流，网络错误 / 429 / 5xx 会带退避重试，
    其余 4xx 直接失败；重试耗尽后抛出 TMDBException。
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_base: Optional[str] = None,
        image_base: Optional[str] = None,
        language: Optional[str] = None,
        request_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key
        self.api_base = api_base or settings.tmdb_api_base
        self.image_base = image_base or settings.tmdb_image_base
        self.language = language or settings.default_language or DEFAULT_LANG
        self.request_delay = request_delay if request_delay is not None else settings.sync_request_delay
        self.max_retries = max(1, max_retries or settings.sync_max_retries)
        self.last_request_time = 0.0
        self.request_count = 0
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers={"Accept": "application/json"},
            timeout=10.0,
            limits=httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            ),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TmdbClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _rate_limit_wait(self) -> None:
        now = time.monotonic()
        delta = now - self.last_request_time
        if delta < self.request_delay:
            await asyncio.sleep(self.request_delay - delta)
        self.last_request_time = time.monotonic()

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"TMDB 请求失败，稍后重试 ({retry_state.attempt_number}/{self.max_retries}): {exc}"
        )

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = dict(params or {})
        params.setdefault("api_key", self.api_key)
        params.setdefault("language", self.language)
        # 第 n 次重试前等待 request_delay * 2 * n
        step = self.request_delay * 2
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_incrementing(start=step, increment=step),
            retry=retry_if_exception_type(TMDBTransientError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._request(path, params)

    async def _request(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._rate_limit_wait()
        self.request_count += 1
        try:
            resp = await self._client.get(path, params=params)
        except httpx.TransportError as exc:
            raise TMDBTransientError(f"TMDB request {path} failed: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TMDBTransientError(f"TMDB {path} returned HTTP {resp.status_code}", resp.status_code)
        if resp.status_code >= 400:
            raise TMDBException(f"TMDB {path} returned HTTP {resp.status_code}", resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise TMDBTransientError(f"TMDB {path} returned invalid JSON") from exc

    async def list_page(self, path: str, page: int = 1) -> Dict[str, Any]:
        """分页列表接口，例如 movie/popular、trending/tv/week、person/popular。"""
        return await self._get(f"/{path.strip('/')}", params={"page": page})

    async def genres(self, media_type: str) -> List[Dict[str, Any]]:
        data = await self._get(f"/genre/{media_type}/list")
        genres = data.get("genres") if isinstance(data, dict) else None
        return genres if isinstance(genres, list) else []

    async def movie(self, movie_id: int) -> Dict[str, Any]:
        return await self._get(f"/movie/{movie_id}", params={"append_to_response": "credits"})

    async def tv(self, tv_id: int) -> Dict[str, Any]:
        return await self._get(f"/tv/{tv_id}", params={"append_to_response": "credits"})

    async def person(self, person_id: int) -> Dict[str, Any]:
        return await self._get(f"/person/{person_id}")

    async def collection(self, collection_id: int) -> Dict[str, Any]:
        return await self._get(f"/collection/{collection_id}")

    def image_url(self, path: Optional[str], size: str = POSTER_SIZE) -> Optional[str]:
        if not path:
            return None
        return f"{self.image_base}{size}{path}"
