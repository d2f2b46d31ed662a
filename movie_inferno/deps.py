"""
依赖注入：配置、数据库客户端、TMDB 客户端、当前用户与管理员校验。
"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request

from movie_inferno.config import Settings, get_settings
from movie_inferno.core.database import DatabaseClient, get_database_client
from movie_inferno.logger import logger
from movie_inferno.services.identity import IdentityClient, SessionUser
from movie_inferno.tmdb import TmdbClient
from movie_inferno.utils.exceptions import (
    AuthenticationException,
    ConfigurationException,
    PermissionDeniedException,
)


def get_settings_dep() -> Settings:
    return get_settings()


def get_db() -> DatabaseClient:
    return get_database_client()


async def get_tmdb_client(
    settings: Settings = Depends(get_settings_dep),
) -> AsyncGenerator[TmdbClient, None]:
    if not settings.tmdb_api_key:
        raise ConfigurationException("TMDB API key not configured", "TMDB_API_KEY")
    client = TmdbClient(
        settings.tmdb_api_key,
        api_base=settings.tmdb_api_base,
        image_base=settings.tmdb_image_base,
        language=settings.default_language,
        request_delay=settings.sync_request_delay,
        max_retries=settings.sync_max_retries,
    )
    try:
        yield client
    finally:
        await client.close()


def get_identity_client(settings: Settings = Depends(get_settings_dep)) -> IdentityClient:
    return IdentityClient(settings.identity_provider_url, timeout=settings.identity_timeout)


async def get_current_user(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
) -> Optional[SessionUser]:
    return await identity.get_session(request)


def require_admin(
    user: Optional[SessionUser] = Depends(get_current_user),
    db: DatabaseClient = Depends(get_db),
) -> SessionUser:
    if user is None:
        raise AuthenticationException()
    try:
        user_id = int(user.id)
    except (TypeError, ValueError):
        logger.warning(f"会话用户 id 不是整数: {user.id!r}")
        raise PermissionDeniedException()

    # 角色以 users 表为准，不信任会话里的 role
    profile = db.table("users").select("role").eq("id", user_id).single().execute().data
    if not profile or profile.get("role") != "admin":
        raise PermissionDeniedException()
    return user
