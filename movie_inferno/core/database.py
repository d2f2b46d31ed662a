"""
数据库引擎、连接池与 DatabaseClient。

DatabaseClient 对外只暴露 table(name) -> QueryBuilder，表名必须在 Base.metadata 中声明。
开发环境可通过 USE_MOCK_DATABASE 使用预置少量数据的内存 SQLite。
"""
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import MetaData, create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from movie_inferno.config import Settings, get_settings
from movie_inferno.core.query_builder import QueryBuilder
from movie_inferno.logger import logger
from movie_inferno.models import Base
from movie_inferno.utils.exceptions import DatabaseException, InvalidIdentifierError


class DatabaseClient:
    def __init__(self, engine: Engine, metadata: MetaData = Base.metadata):
        self.engine = engine
        self.metadata = metadata

    @property
    def table_names(self) -> List[str]:
        return sorted(self.metadata.tables)

    def table(self, name: str) -> QueryBuilder:
        name = (name or "").strip()
        table = self.metadata.tables.get(name)
        if table is None:
            raise InvalidIdentifierError("table", name)
        return QueryBuilder(self.engine, table)

    # 与托管后端客户端同名
    from_ = table

    def create_tables(self) -> List[str]:
        """创建缺失的表，返回本次新建的表名。"""
        try:
            with self.engine.begin() as conn:
                existing = set(inspect(conn).get_table_names())
                self.metadata.create_all(conn)
        except SQLAlchemyError as exc:
            raise DatabaseException(f"create_all failed: {exc}") from exc
        created = [name for name in self.table_names if name not in existing]
        if created:
            logger.info(f"已创建数据表: {', '.join(created)}")
        return created

    def ping(self) -> Dict[str, object]:
        try:
            with self.engine.connect() as conn:
                now = conn.execute(text("SELECT CURRENT_TIMESTAMP")).scalar()
        except SQLAlchemyError as exc:
            raise DatabaseException(f"database unreachable: {exc}") from exc
        return {
            "connected": True,
            "dialect": self.engine.dialect.name,
            "current_time": str(now),
        }

    def dispose(self) -> None:
        self.engine.dispose()


def create_db_engine(settings: Settings) -> Engine:
    if settings.use_mock_database:
        return create_engine(
            "sqlite://",
            echo=settings.db_echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    url = settings.database_url
    if url.startswith("sqlite"):
        db_path = url.split("///", 1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url,
            echo=settings.db_echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


MOCK_GENRES = [
    {"id": 28, "name": "Action"},
    {"id": 80, "name": "Crime"},
    {"id": 18, "name": "Drama"},
    {"id": 53, "name": "Thriller"},
    {"id": 12, "name": "Adventure"},
]

MOCK_MOVIES = [
    {
        "id": 278,
        "title": "The Shawshank Redemption",
        "synopsis": "Two imprisoned men bond over a number of years, finding solace and eventual "
                    "redemption through acts of common decency.",
        "poster": "https://image.tmdb.org/t/p/w500/q6y0Go1tsGEsmtFryDOJo3dEmqu.jpg",
        "release_date": date(1994, 9, 23),
        "rating": 9.3,
        "vote_count": 27000,
        "popularity": 120.5,
    },
    {
        "id": 238,
        "title": "The Godfather",
        "synopsis": "The aging patriarch of an organized crime dynasty transfers control of his "
                    "clandestine empire to his reluctant son.",
        "poster": "https://image.tmdb.org/t/p/w500/3bhkrj58Vtu7enYsRolD1fZdja1.jpg",
        "release_date": date(1972, 3, 14),
        "rating": 9.2,
        "vote_count": 20000,
        "popularity": 110.2,
    },
    {
        "id": 155,
        "title": "The Dark Knight",
        "synopsis": "When the menace known as the Joker wreaks havoc and chaos on the people of "
                    "Gotham, Batman must accept one of the greatest tests of his ability to fight injustice.",
        "poster": "https://image.tmdb.org/t/p/w500/qJ2tW6WMUDux911r6m7haRef0WH.jpg",
        "release_date": date(2008, 7, 16),
        "rating": 9.0,
        "vote_count": 32000,
        "popularity": 150.8,
    },
]

MOCK_MOVIE_GENRES = [
    {"movie_id": 278, "genre_id": 18},
    {"movie_id": 238, "genre_id": 80},
    {"movie_id": 238, "genre_id": 18},
    {"movie_id": 155, "genre_id": 28},
    {"movie_id": 155, "genre_id": 80},
    {"movie_id": 155, "genre_id": 18},
]

MOCK_TV_SHOWS = [
    {
        "id": 1396,
        "title": "Breaking Bad",
        "synopsis": "A high school chemistry teacher diagnosed with inoperable lung cancer turns to "
                    "manufacturing and selling methamphetamine in order to secure his family's future.",
        "poster": "https://image.tmdb.org/t/p/w500/ggFHVNu6YYI5L9pCfOacjizRGt.jpg",
        "first_air_date": date(2008, 1, 20),
        "rating": 9.5,
        "vote_count": 14000,
        "popularity": 300.1,
    },
    {
        "id": 1399,
        "title": "Game of Thrones",
        "synopsis": "Nine noble families fight for control over the lands of Westeros, while an "
                    "ancient enemy returns after being dormant for millennia.",
        "poster": "https://image.tmdb.org/t/p/w500/u3bZgnGQ9T01sWNhyveQz0wH0Hl.jpg",
        "first_air_date": date(2011, 4, 17),
        "rating": 9.3,
        "vote_count": 23000,
        "popularity": 280.4,
    },
]

MOCK_TV_SHOW_GENRES = [
    {"tv_show_id": 1396, "genre_id": 80},
    {"tv_show_id": 1396, "genre_id": 18},
    {"tv_show_id": 1396, "genre_id": 53},
    {"tv_show_id": 1399, "genre_id": 28},
    {"tv_show_id": 1399, "genre_id": 12},
    {"tv_show_id": 1399, "genre_id": 18},
]


def load_mock_catalogue(db: DatabaseClient) -> None:
    """建表并写入开发用的小型片库，重复调用是安全的。"""
    db.create_tables()
    db.table("genres").upsert(MOCK_GENRES, on_conflict="id")
    db.table("movies").upsert(MOCK_MOVIES, on_conflict="id")
    db.table("movie_genres").upsert(MOCK_MOVIE_GENRES, on_conflict="movie_id,genre_id")
    db.table("tv_shows").upsert(MOCK_TV_SHOWS, on_conflict="id")
    db.table("tv_show_genres").upsert(MOCK_TV_SHOW_GENRES, on_conflict="tv_show_id,genre_id")
    logger.info("已加载开发用模拟数据")


def build_database_client(settings: Optional[Settings] = None) -> DatabaseClient:
    settings = settings or get_settings()
    client = DatabaseClient(create_db_engine(settings))
    if settings.use_mock_database:
        load_mock_catalogue(client)
    return client


@lru_cache
def get_database_client() -> DatabaseClient:
    return build_database_client()
