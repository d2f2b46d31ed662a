from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 优先加载项目根目录下的 .env
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


class Settings(BaseSettings):
    """应用配置，来自环境变量或 .env 文件。"""

    # TMDB 配置（缺失时由同步接口返回 500，而不是启动失败）
    tmdb_api_key: Optional[str] = Field(None, alias="TMDB_API_KEY")
    default_language: str = Field("en-US", alias="DEFAULT_LANG")
    tmdb_api_base: str = Field("https://api.themoviedb.org/3", alias="TMDB_API_BASE")
    tmdb_image_base: str = Field("https://image.tmdb.org/t/p/", alias="TMDB_IMAGE_BASE")

    # 数据库配置
    database_url: str = Field("sqlite:///./data/movie_inferno.db", alias="DATABASE_URL")
    use_mock_database: bool = Field(False, alias="USE_MOCK_DATABASE")
    db_pool_size: int = Field(20, ge=1, alias="DB_POOL_SIZE")
    db_pool_timeout: int = Field(10, ge=1, alias="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(30, alias="DB_POOL_RECYCLE")
    db_echo: bool = Field(False, alias="DB_ECHO")

    # 应用配置
    api_prefix: str = Field("/api", alias="API_PREFIX")
    app_env: str = Field("development", alias="APP_ENV")
    app_version: str = Field("1.0.0", alias="APP_VERSION")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # 同步流水线配置
    sync_movie_pages: int = Field(2, ge=0, alias="SYNC_MOVIE_PAGES")
    sync_tv_pages: int = Field(2, ge=0, alias="SYNC_TV_PAGES")
    sync_people_pages: int = Field(1, ge=0, alias="SYNC_PEOPLE_PAGES")
    sync_cast_limit: int = Field(10, ge=0, alias="SYNC_CAST_LIMIT")
    sync_request_delay: float = Field(0.2, ge=0.0, alias="SYNC_REQUEST_DELAY")
    sync_max_retries: int = Field(3, ge=1, alias="SYNC_MAX_RETRIES")
    sample_data_seed: int = Field(42, alias="SAMPLE_DATA_SEED")

    # 身份提供方（只读取会话中的用户 id / role）
    identity_provider_url: Optional[str] = Field(None, alias="IDENTITY_PROVIDER_URL")
    identity_timeout: float = Field(5.0, alias="IDENTITY_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True, extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
