"""
片库读取：电影 / 剧集 / 人物 / 类型列表、热门、精选与统计。
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from movie_inferno.core.database import DatabaseClient
from movie_inferno.utils.exceptions import NotFoundException, ValidationException

LIST_FIELDS = "id, title, poster, synopsis, rating, vote_count, popularity, backdrop_path"


@dataclass(frozen=True)
class ContentKind:
    name: str
    table: str
    genre_table: str
    credit_table: str
    owner_column: str
    date_column: str
    year_key: str
    featured_min_votes: int

    @property
    def list_fields(self) -> str:
        return f"{LIST_FIELDS}, {self.date_column}"


MOVIE = ContentKind(
    name="movie",
    table="movies",
    genre_table="movie_genres",
    credit_table="movie_credits",
    owner_column="movie_id",
    date_column="release_date",
    year_key="release_year",
    featured_min_votes=100,
)
TV = ContentKind(
    name="tv",
    table="tv_shows",
    genre_table="tv_show_genres",
    credit_table="tv_show_credits",
    owner_column="tv_show_id",
    date_column="first_air_date",
    year_key="first_air_year",
    featured_min_votes=50,
)
CONTENT_KINDS = {MOVIE.name: MOVIE, TV.name: TV}

FEATURED_MIN_RATING = 7.0


def content_kind(name: str) -> ContentKind:
    kind = CONTENT_KINDS.get((name or "").lower())
    if kind is None:
        raise ValidationException(f"Invalid content type: {name}", "type")
    return kind


class ContentService:
    def __init__(self, db: DatabaseClient):
        self.db = db

    # ------------------------------------------------------------------
    # 类型
    # ------------------------------------------------------------------
    def list_genres(self) -> List[Dict[str, Any]]:
        return self.db.table("genres").select("id, name").order("name").execute().data

    def genre_names(self, kind: ContentKind, owner_ids: Sequence[int]) -> Dict[int, List[str]]:
        """owner id -> 类型名列表。"""
        if not owner_ids:
            return {}
        links = (
            self.db.table(kind.genre_table)
            .select(f"{kind.owner_column}, genre_id")
            .in_(kind.owner_column, list(owner_ids))
            .execute()
            .data
        )
        genre_ids = sorted({link["genre_id"] for link in links})
        names = {
            row["id"]: row["name"]
            for row in self.db.table("genres").select("id, name").in_("id", genre_ids).execute().data
        }
        result: Dict[int, List[str]] = {owner_id: [] for owner_id in owner_ids}
        for link in links:
            name = names.get(link["genre_id"])
            if name:
                result[link[kind.owner_column]].append(name)
        return result

    def owners_in_genres(self, kind: ContentKind, genre_ids: Sequence[int]) -> List[int]:
        if not genre_ids:
            return []
        links = (
            self.db.table(kind.genre_table)
            .select(kind.owner_column)
            .in_("genre_id", list(genre_ids))
            .execute()
            .data
        )
        return sorted({link[kind.owner_column] for link in links})

    def by_genre(self, type_name: str, genre_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        kind = content_kind(type_name)
        owner_ids = self.owners_in_genres(kind, [genre_id])
        return (
            self.db.table(kind.table)
            .select(kind.list_fields)
            .in_("id", owner_ids)
            .order("rating", ascending=False)
            .limit(limit)
            .execute()
            .data
        )

    # ------------------------------------------------------------------
    # 列表与详情
    # ------------------------------------------------------------------
    def list_content(self, kind: ContentKind, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        return (
            self.db.table(kind.table)
            .select(kind.list_fields)
            .order("rating", ascending=False)
            .order("id")
            .range(offset, offset + limit - 1)
            .execute()
            .data
        )

    def get_content(self, kind: ContentKind, content_id: int) -> Dict[str, Any]:
        item = self.db.table(kind.table).select("*").eq("id", content_id).single().execute().data
        if item is None:
            raise NotFoundException(kind.table, str(content_id))
        item["genres"] = self.genre_names(kind, [content_id]).get(content_id, [])
        item["credits"] = self._credits(kind, content_id)
        return item

    def _credits(self, kind: ContentKind, content_id: int) -> List[Dict[str, Any]]:
        credits = (
            self.db.table(kind.credit_table)
            .select("person_id, job, character_name, department, order_index")
            .eq(kind.owner_column, content_id)
            .order("order_index")
            .execute()
            .data
        )
        people = self._people([c["person_id"] for c in credits])
        for credit in credits:
            person = people.get(credit["person_id"]) or {}
            credit["name"] = person.get("name")
            credit["profile_path"] = person.get("profile_path")
        return credits

    def _people(self, person_ids: Sequence[int]) -> Dict[int, Dict[str, Any]]:
        rows = (
            self.db.table("people")
            .select("id, name, profile_path")
            .in_("id", sorted(set(person_ids)))
            .execute()
            .data
        )
        return {row["id"]: row for row in rows}

    def get_person(self, person_id: int) -> Dict[str, Any]:
        person = self.db.table("people").select("*").eq("id", person_id).single().execute().data
        if person is None:
            raise NotFoundException("people", str(person_id))
        person["movie_credits"] = self._person_credits(MOVIE, person_id)
        person["tv_credits"] = self._person_credits(TV, person_id)
        return person

    def _person_credits(self, kind: ContentKind, person_id: int) -> List[Dict[str, Any]]:
        credits = (
            self.db.table(kind.credit_table)
            .select(f"{kind.owner_column}, job, character_name, department")
            .eq("person_id", person_id)
            .execute()
            .data
        )
        titles = {
            row["id"]: row
            for row in self.db.table(kind.table)
            .select(f"id, title, poster, {kind.date_column}")
            .in_("id", sorted({c[kind.owner_column] for c in credits}))
            .execute()
            .data
        }
        result = []
        for credit in credits:
            content = titles.get(credit[kind.owner_column])
            if content is None:
                continue
            result.append({**content, "job": credit["job"], "character_name": credit["character_name"]})
        result.sort(key=lambda c: str(c.get(kind.date_column) or ""), reverse=True)
        return result

    # ------------------------------------------------------------------
    # 首页聚合
    # ------------------------------------------------------------------
    def stats(self) -> Dict[str, int]:
        return {
            table: self.db.table(table).count().count
            for table in ("movies", "tv_shows", "users", "reviews")
        }

    def trending(self, type_name: str = "all", limit: int = 10) -> Dict[str, Any]:
        if type_name == "all":
            quotas = [(MOVIE, (limit + 1) // 2), (TV, limit // 2)]
        else:
            quotas = [(content_kind(type_name), limit)]

        content: List[Dict[str, Any]] = []
        for kind, quota in quotas:
            rows = (
                self.db.table(kind.table)
                .select(kind.list_fields)
                .order("popularity", ascending=False)
                .limit(quota)
                .execute()
                .data
            )
            content.extend(self._tag(kind, row) for row in rows)
        content = _by_popularity(content)[:limit]
        return {"content": content, "total": len(content), "type": type_name}

    def featured(self, limit: int = 6) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = []
        for kind, quota in ((MOVIE, (limit + 1) // 2), (TV, limit // 2)):
            rows = (
                self.db.table(kind.table)
                .select(kind.list_fields)
                .gte("rating", FEATURED_MIN_RATING)
                .gte("vote_count", kind.featured_min_votes)
                .order("popularity", ascending=False)
                .limit(quota)
                .execute()
                .data
            )
            content.extend(self._tag(kind, row) for row in rows)
        content = _by_popularity(content)[:limit]
        return {"content": content, "total": len(content)}

    @staticmethod
    def _tag(kind: ContentKind, row: Dict[str, Any]) -> Dict[str, Any]:
        return {**row, "type": kind.name, "name": row.get("title")}


def _by_popularity(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: item.get("popularity") or 0, reverse=True)


def release_year(value: Optional[Any]) -> Optional[int]:
    return getattr(value, "year", None)
