"""
TMDB 同步流水线。

按顺序执行：类型 -> 电影 -> 剧集 -> 人物 -> 合集 -> 示例数据（奖项/评论/片单）。
所有写入都是按 TMDB id 的 upsert，重复运行是幂等的；单条记录失败只记录日志并继续。
"""
import random
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from movie_inferno.config import Settings, get_settings
from movie_inferno.core import sample_data
from movie_inferno.core.database import DatabaseClient
from movie_inferno.logger import logger
from movie_inferno.tmdb import BACKDROP_SIZE, POSTER_SIZE, TmdbClient
from movie_inferno.utils.exceptions import DatabaseException, TMDBException

MOVIE_SOURCES = (
    "movie/popular",
    "movie/top_rated",
    "movie/now_playing",
    "movie/upcoming",
    "trending/movie/week",
)
TV_SOURCES = (
    "tv/popular",
    "tv/top_rated",
    "tv/on_the_air",
    "tv/airing_today",
    "trending/tv/week",
)
PEOPLE_SOURCES = ("person/popular",)

COLLECTION_IDS = (1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 86311, 131295, 131296, 131635, 230, 295, 528, 556, 645)

MOVIE_CREW_JOBS = ("Director", "Producer", "Executive Producer", "Screenplay", "Writer")
TV_CREW_JOBS = ("Director", "Producer", "Executive Producer", "Creator", "Writer")
CREW_LIMIT = 10
SAMPLE_USER_LIMIT = 3
SAMPLE_CONTENT_LIMIT = 10
MAX_ERRORS = 50


@dataclass
class VisitedIds:
    """单次同步内已处理过的 TMDB id，不跨运行共享。"""

    movies: Set[int] = field(default_factory=set)
    tv_shows: Set[int] = field(default_factory=set)
    people: Set[int] = field(default_factory=set)
    collections: Set[int] = field(default_factory=set)
    # 已成功写入 movies 表的 id，合集只链接这些电影
    stored_movies: Set[int] = field(default_factory=set)


@dataclass
class SyncSummary:
    genres: int = 0
    movies: int = 0
    tv_shows: int = 0
    people: int = 0
    collections: int = 0
    awards: int = 0
    reviews: int = 0
    watchlist: int = 0
    credits: int = 0
    failures: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def record_failure(self, message: str) -> None:
        self.failures += 1
        if len(self.errors) < MAX_ERRORS:
            self.errors.append(message)

    @property
    def tables_populated(self) -> List[str]:
        tables = ("genres", "movies", "tv_shows", "people", "collections", "awards", "reviews", "watchlist")
        return [name for name in tables if getattr(self, name) > 0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "genres": self.genres,
            "movies": self.movies,
            "tv_shows": self.tv_shows,
            "people": self.people,
            "collections": self.collections,
            "awards": self.awards,
            "reviews": self.reviews,
            "watchlist": self.watchlist,
            "credits": self.credits,
            "failures": self.failures,
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class SyncRun:
    visited: VisitedIds = field(default_factory=VisitedIds)
    summary: SyncSummary = field(default_factory=SyncSummary)

    def fail(self, message: str) -> None:
        logger.warning(message)
        self.summary.record_failure(message)


def parse_date(value: Optional[str]) -> Optional[date]:
    """TMDB 日期为 YYYY-MM-DD，空串或非法值返回 None。"""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        return None


def adapt_movie(item: Dict, client: TmdbClient) -> Dict[str, Any]:
    return {
        "id": item["id"],
        "title": item.get("title") or item.get("original_title") or "Untitled",
        "release_date": parse_date(item.get("release_date")),
        "poster": client.image_url(item.get("poster_path"), POSTER_SIZE),
        "synopsis": item.get("overview") or None,
        "rating": item.get("vote_average"),
        "vote_count": item.get("vote_count"),
        "duration": item.get("runtime"),
        "budget": item.get("budget"),
        "revenue": item.get("revenue"),
        "original_language": item.get("original_language"),
        "backdrop_path": client.image_url(item.get("backdrop_path"), BACKDROP_SIZE),
        "popularity": item.get("popularity"),
        "updated_at": datetime.now(timezone.utc),
    }


def adapt_tv_show(item: Dict, client: TmdbClient) -> Dict[str, Any]:
    return {
        "id": item["id"],
        "title": item.get("name") or item.get("original_name") or "Untitled",
        "first_air_date": parse_date(item.get("first_air_date")),
        "last_air_date": parse_date(item.get("last_air_date")),
        "poster": client.image_url(item.get("poster_path"), POSTER_SIZE),
        "synopsis": item.get("overview") or None,
        "rating": item.get("vote_average"),
        "vote_count": item.get("vote_count"),
        "number_of_seasons": item.get("number_of_seasons"),
        "number_of_episodes": item.get("number_of_episodes"),
        "status": item.get("status"),
        "original_language": item.get("original_language"),
        "backdrop_path": client.image_url(item.get("backdrop_path"), BACKDROP_SIZE),
        "popularity": item.get("popularity"),
        "updated_at": datetime.now(timezone.utc),
    }


def adapt_person(item: Dict, client: TmdbClient) -> Dict[str, Any]:
    return {
        "id": item["id"],
        "name": item.get("name") or "Unknown",
        "biography": item.get("biography") or None,
        "birthday": parse_date(item.get("birthday")),
        "deathday": parse_date(item.get("deathday")),
        "place_of_birth": item.get("place_of_birth"),
        "profile_path": client.image_url(item.get("profile_path"), POSTER_SIZE),
        "popularity": item.get("popularity"),
        "known_for_department": item.get("known_for_department"),
    }


def adapt_credit_person(credit: Dict, client: TmdbClient, default_department: str) -> Dict[str, Any]:
    # 演职员列表里只有部分人物字段，不覆盖详情接口写入的 biography 等
    return {
        "id": credit["id"],
        "name": credit.get("name") or "Unknown",
        "profile_path": client.image_url(credit.get("profile_path"), POSTER_SIZE),
        "popularity": credit.get("popularity"),
        "known_for_department": credit.get("known_for_department") or default_department,
    }


def adapt_collection(item: Dict, client: TmdbClient) -> Dict[str, Any]:
    row = {
        "id": item["id"],
        "name": item.get("name") or "Untitled collection",
        "poster": client.image_url(item.get("poster_path"), POSTER_SIZE),
        "backdrop_path": client.image_url(item.get("backdrop_path"), BACKDROP_SIZE),
    }
    # belongs_to_collection 不带 overview
    if "overview" in item:
        row["overview"] = item.get("overview") or None
    return row


def top_cast(credits: Dict, limit: int) -> List[Dict]:
    cast = [c for c in credits.get("cast") or [] if c.get("id")]
    cast.sort(key=lambda c: c.get("order") if c.get("order") is not None else 9999)
    return cast[:limit]


def key_crew(credits: Dict, jobs: Sequence[str], limit: int = CREW_LIMIT) -> List[Dict]:
    seen = set()
    crew = []
    for member in credits.get("crew") or []:
        job = member.get("job")
        if not member.get("id") or job not in jobs:
            continue
        key = (member["id"], job)
        if key in seen:
            continue
        seen.add(key)
        crew.append(member)
        if len(crew) >= limit:
            break
    return crew


def tv_creators(item: Dict) -> List[Dict]:
    """剧集的主创在 created_by 中，不在 credits.crew 里。"""
    return [
        {**creator, "job": "Creator", "department": "Creator"}
        for creator in item.get("created_by") or []
        if creator.get("id")
    ]


class SyncPipeline:
    def __init__(
        self,
        tmdb: TmdbClient,
        db: DatabaseClient,
        settings: Optional[Settings] = None,
    ):
        self.tmdb = tmdb
        self.db = db
        self.settings = settings or get_settings()

    async def run(self) -> SyncSummary:
        run = SyncRun()
        start = time.monotonic()
        logger.info("开始同步 TMDB 数据")

        await self.sync_genres(run)
        await self.sync_movies(run)
        await self.sync_tv_shows(run)
        await self.sync_people(run)
        await self.sync_collections(run)
        self.sync_sample_data(run)

        summary = run.summary
        summary.finished_at = datetime.now(timezone.utc)
        summary.duration_seconds = round(time.monotonic() - start, 3)
        logger.info(
            f"同步完成: 电影 {summary.movies}, 剧集 {summary.tv_shows}, 人物 {summary.people}, "
            f"合集 {summary.collections}, 失败 {summary.failures}, 耗时 {summary.duration_seconds}s"
        )
        return summary

    # ------------------------------------------------------------------
    # 写入
    # ------------------------------------------------------------------
    def _upsert(
        self,
        run: SyncRun,
        table: str,
        rows: Union[Dict[str, Any], List[Dict[str, Any]]],
        on_conflict: str = "id",
    ) -> bool:
        if not rows:
            return True
        try:
            self.db.table(table).upsert(rows, on_conflict=on_conflict)
        except DatabaseException as exc:
            run.fail(f"写入 {table} 失败: {exc.message}")
            return False
        return True

    async def _walk(
        self,
        run: SyncRun,
        sources: Iterable[str],
        pages: int,
        seen: Set[int],
        handler: Callable[[SyncRun, int], Awaitable[None]],
    ) -> None:
        """遍历分页列表接口，对每个未见过的 id 调用 handler。"""
        for source in sources:
            for page in range(1, pages + 1):
                try:
                    data = await self.tmdb.list_page(source, page)
                except TMDBException as exc:
                    run.fail(f"{source} 第 {page} 页获取失败: {exc.message}")
                    continue

                if not isinstance(data, dict):
                    run.fail(f"{source} 第 {page} 页返回格式异常: {type(data).__name__}")
                    continue

                results = data.get("results")
                for item in results if isinstance(results, list) else []:
                    item_id = item.get("id") if isinstance(item, dict) else None
                    if not isinstance(item_id, int) or item_id in seen:
                        continue
                    # 先登记再抓详情，失败的详情本次不会再请求
                    seen.add(item_id)
                    try:
                        await handler(run, item_id)
                    except (AttributeError, KeyError, TypeError, ValueError) as exc:
                        logger.exception(f"{source} 条目 {item_id} 数据异常")
                        run.summary.record_failure(f"{source} 条目 {item_id} 数据异常: {exc}")

                total_pages = data.get("total_pages")
                if isinstance(total_pages, int) and page >= total_pages:
                    break

    # ------------------------------------------------------------------
    # 各阶段
    # ------------------------------------------------------------------
    async def sync_genres(self, run: SyncRun) -> None:
        logger.info("同步类型列表")
        genres: Dict[int, str] = {}
        for media_type in ("movie", "tv"):
            try:
                items = await self.tmdb.genres(media_type)
            except TMDBException as exc:
                run.fail(f"{media_type} 类型列表获取失败: {exc.message}")
                continue
            for genre in items:
                if isinstance(genre, dict) and genre.get("id") is not None:
                    genres.setdefault(genre["id"], genre.get("name") or "")

        rows = [{"id": gid, "name": name} for gid, name in genres.items()]
        if rows and self._upsert(run, "genres", rows):
            run.summary.genres = len(rows)

    async def sync_movies(self, run: SyncRun) -> None:
        logger.info(f"同步电影，每个列表 {self.settings.sync_movie_pages} 页")
        await self._walk(run, MOVIE_SOURCES, self.settings.sync_movie_pages, run.visited.movies, self.sync_movie)

    async def sync_movie(self, run: SyncRun, movie_id: int) -> None:
        try:
            detail = await self.tmdb.movie(movie_id)
        except TMDBException as exc:
            run.fail(f"电影 {movie_id} 详情获取失败: {exc.message}")
            return

        if not self._upsert(run, "movies", adapt_movie(detail, self.tmdb)):
            return
        run.summary.movies += 1
        run.visited.stored_movies.add(movie_id)
        logger.debug(f"已写入电影 {movie_id}: {detail.get('title')}")

        self._link_genres(run, "movie_genres", "movie_id", movie_id, detail.get("genres") or [])
        credits = detail.get("credits") or {}
        self._write_credits(
            run,
            "movie_credits",
            "movie_id",
            movie_id,
            top_cast(credits, self.settings.sync_cast_limit),
            key_crew(credits, MOVIE_CREW_JOBS),
        )

        collection = detail.get("belongs_to_collection")
        if collection and collection.get("id"):
            if self._upsert(run, "collections", adapt_collection(collection, self.tmdb)):
                self._upsert(
                    run,
                    "movie_collections",
                    {"movie_id": movie_id, "collection_id": collection["id"]},
                    on_conflict="movie_id,collection_id",
                )

    async def sync_tv_shows(self, run: SyncRun) -> None:
        logger.info(f"同步剧集，每个列表 {self.settings.sync_tv_pages} 页")
        await self._walk(run, TV_SOURCES, self.settings.sync_tv_pages, run.visited.tv_shows, self.sync_tv_show)

    async def sync_tv_show(self, run: SyncRun, tv_id: int) -> None:
        try:
            detail = await self.tmdb.tv(tv_id)
        except TMDBException as exc:
            run.fail(f"剧集 {tv_id} 详情获取失败: {exc.message}")
            return

        if not self._upsert(run, "tv_shows", adapt_tv_show(detail, self.tmdb)):
            return
        run.summary.tv_shows += 1
        logger.debug(f"已写入剧集 {tv_id}: {detail.get('name')}")

        self._link_genres(run, "tv_show_genres", "tv_show_id", tv_id, detail.get("genres") or [])
        credits = detail.get("credits") or {}
        crew = (tv_creators(detail) + key_crew(credits, TV_CREW_JOBS))[:CREW_LIMIT]
        self._write_credits(
            run,
            "tv_show_credits",
            "tv_show_id",
            tv_id,
            top_cast(credits, self.settings.sync_cast_limit),
            crew,
        )

    async def sync_people(self, run: SyncRun) -> None:
        logger.info(f"同步热门人物，{self.settings.sync_people_pages} 页")
        await self._walk(run, PEOPLE_SOURCES, self.settings.sync_people_pages, run.visited.people, self.sync_person)

    async def sync_person(self, run: SyncRun, person_id: int) -> None:
        try:
            detail = await self.tmdb.person(person_id)
        except TMDBException as exc:
            run.fail(f"人物 {person_id} 详情获取失败: {exc.message}")
            return
        if self._upsert(run, "people", adapt_person(detail, self.tmdb)):
            run.summary.people += 1

    async def sync_collections(self, run: SyncRun) -> None:
        logger.info(f"同步合集，共 {len(COLLECTION_IDS)} 个")
        for collection_id in COLLECTION_IDS:
            if collection_id in run.visited.collections:
                continue
            run.visited.collections.add(collection_id)
            try:
                detail = await self.tmdb.collection(collection_id)
            except TMDBException as exc:
                run.fail(f"合集 {collection_id} 获取失败: {exc.message}")
                continue
            if not isinstance(detail, dict):
                run.fail(f"合集 {collection_id} 返回格式异常: {type(detail).__name__}")
                continue
            if not detail.get("id"):
                continue
            if not self._upsert(run, "collections", adapt_collection(detail, self.tmdb)):
                continue
            run.summary.collections += 1

            links = [
                {"movie_id": part["id"], "collection_id": collection_id}
                for part in detail.get("parts") or []
                if isinstance(part, dict) and part.get("id") in run.visited.stored_movies
            ]
            self._upsert(run, "movie_collections", links, on_conflict="movie_id,collection_id")

    def sync_sample_data(self, run: SyncRun) -> None:
        logger.info("写入示例奖项、评论与片单")
        rng = random.Random(self.settings.sample_data_seed)

        awards = sample_data.build_awards()
        if self._upsert(run, "awards", awards):
            run.summary.awards = len(awards)

        try:
            user_ids = self._ids("users", SAMPLE_USER_LIMIT)
            movie_ids = self._ids("movies", SAMPLE_CONTENT_LIMIT)
            tv_show_ids = self._ids("tv_shows", SAMPLE_CONTENT_LIMIT)
        except DatabaseException as exc:
            run.fail(f"读取示例数据来源失败: {exc.message}")
            return

        if not user_ids or not (movie_ids or tv_show_ids):
            logger.info("没有用户或影视数据，跳过示例评论与片单")
            return

        reviews = sample_data.build_reviews(movie_ids, tv_show_ids, user_ids, rng)
        if self._upsert(run, "reviews", reviews):
            run.summary.reviews = len(reviews)

        watchlist = sample_data.build_watchlist(movie_ids, tv_show_ids, user_ids, rng)
        if self._upsert(run, "watchlist", watchlist):
            run.summary.watchlist = len(watchlist)

    # ------------------------------------------------------------------
    # 关联表
    # ------------------------------------------------------------------
    def _ids(self, table: str, limit: int) -> List[int]:
        result = self.db.table(table).select("id").order("id").limit(limit).execute()
        return [row["id"] for row in result.data]

    def _link_genres(
        self,
        run: SyncRun,
        link_table: str,
        owner_column: str,
        owner_id: int,
        genres: List[Dict],
    ) -> None:
        genres = [g for g in genres if g.get("id") is not None]
        if not genres:
            return
        # 详情里的类型可能不在列表接口中，先补齐 genres 表
        self._upsert(run, "genres", [{"id": g["id"], "name": g.get("name") or ""} for g in genres])
        links = [{owner_column: owner_id, "genre_id": g["id"]} for g in genres]
        self._upsert(run, link_table, links, on_conflict=f"{owner_column},genre_id")

    def _write_credits(
        self,
        run: SyncRun,
        credit_table: str,
        owner_column: str,
        owner_id: int,
        cast: List[Dict],
        crew: List[Dict],
    ) -> None:
        entries = [
            (credit, "Acting", {
                "job": "Actor",
                "character_name": credit.get("character"),
                "department": "Acting",
                "order_index": credit.get("order"),
            })
            for credit in cast
        ]
        entries += [
            (credit, credit.get("department") or "Crew", {
                "job": credit.get("job"),
                "character_name": None,
                "department": credit.get("department"),
                "order_index": None,
            })
            for credit in crew
        ]

        for credit, department, fields in entries:
            person = adapt_credit_person(credit, self.tmdb, department)
            if not self._upsert(run, "people", person):
                continue
            row = {owner_column: owner_id, "person_id": credit["id"], **fields}
            if self._upsert(run, credit_table, row, on_conflict=f"{owner_column},person_id,job"):
                run.summary.credits += 1
