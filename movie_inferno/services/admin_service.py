"""
管理后台：统计、最近动态、数据导出与建表。
"""
import csv
import io
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from movie_inferno.core.database import DatabaseClient
from movie_inferno.utils.exceptions import ValidationException

EXPORT_TABLES = (
    "users",
    "reviews",
    "watchlist",
    "movies",
    "tv_shows",
    "people",
    "genres",
    "collections",
    "awards",
    "chatbot_conversations",
)
EXPORT_FORMATS = ("json", "csv")
ACTIVITY_SOURCE_LIMIT = 10


def growth(current: int, previous: int) -> int:
    """本期相对上期的增长百分比。"""
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100)


class AdminService:
    def __init__(self, db: DatabaseClient):
        self.db = db

    def _count(self, table: str, column: Optional[str] = None, since=None, until=None) -> int:
        query = self.db.table(table)
        if since is not None:
            query = query.gte(column, since)
        if until is not None:
            query = query.lt(column, until)
        return query.count().count

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        two_months_ago = now - timedelta(days=60)

        def new_and_previous(table: str) -> Tuple[int, int]:
            return (
                self._count(table, "created_at", since=month_ago),
                self._count(table, "created_at", since=two_months_ago, until=month_ago),
            )

        new_users, prev_users = new_and_previous("users")
        new_movies, prev_movies = new_and_previous("movies")
        new_tv, prev_tv = new_and_previous("tv_shows")
        new_reviews, prev_reviews = new_and_previous("reviews")

        return {
            "users": {
                "total": self._count("users"),
                "new_this_month": new_users,
                "active_this_week": self._count("users", "last_sign_in_at", since=week_ago),
                "change": growth(new_users, prev_users),
            },
            "content": {
                "movies": self._count("movies"),
                "tv_shows": self._count("tv_shows"),
                "people": self._count("people"),
                "collections": self._count("collections"),
                "movies_change": growth(new_movies, prev_movies),
                "tv_shows_change": growth(new_tv, prev_tv),
            },
            "engagement": {
                "reviews": self._count("reviews"),
                "watchlist_items": self._count("watchlist"),
                "chatbot_conversations": self._count("chatbot_conversations"),
                "reviews_change": growth(new_reviews, prev_reviews),
            },
        }

    # ------------------------------------------------------------------
    # 最近动态
    # ------------------------------------------------------------------
    def _latest(self, table: str, fields: str, time_column: str) -> List[Dict[str, Any]]:
        return (
            self.db.table(table)
            .select(fields)
            .order(time_column, ascending=False)
            .limit(ACTIVITY_SOURCE_LIMIT)
            .execute()
            .data
        )

    def _lookup(self, table: str, fields: str, ids: Sequence[Any]) -> Dict[Any, Dict[str, Any]]:
        ids = sorted({i for i in ids if i is not None})
        rows = self.db.table(table).select(fields).in_("id", ids).execute().data
        return {row["id"]: row for row in rows}

    def activity(self, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        users = self._latest("users", "id, email, full_name, created_at", "created_at")
        reviews = self._latest("reviews", "id, user_id, movie_id, tv_show_id, rating, created_at", "created_at")
        watchlist = self._latest("watchlist", "id, user_id, movie_id, tv_show_id, added_at", "added_at")
        conversations = self._latest(
            "chatbot_conversations", "id, user_message, bot_response, created_at", "created_at"
        )

        engaged = reviews + watchlist
        names = self._lookup("users", "id, email, full_name", [r["user_id"] for r in engaged])
        movies = self._lookup("movies", "id, title", [r["movie_id"] for r in engaged])
        tv_shows = self._lookup("tv_shows", "id, title", [r["tv_show_id"] for r in engaged])

        def user_name(user_id) -> str:
            user = names.get(user_id) or {}
            return user.get("full_name") or user.get("email") or "Unknown User"

        def title(row) -> str:
            content = movies.get(row.get("movie_id")) or tv_shows.get(row.get("tv_show_id")) or {}
            return content.get("title") or "Unknown Content"

        activities: List[Dict[str, Any]] = []
        for user in users:
            name = user.get("full_name") or user.get("email")
            activities.append({
                "id": f"user_{user['id']}",
                "type": "user_registration",
                "description": f"New user registered: {name}",
                "timestamp": user.get("created_at"),
                "user": name,
                "details": {"user_id": user["id"], "email": user.get("email")},
            })
        for review in reviews:
            name = user_name(review["user_id"])
            activities.append({
                "id": f"review_{review['id']}",
                "type": "review",
                "description": f'{name} reviewed "{title(review)}" ({review.get("rating")}/5)',
                "timestamp": review.get("created_at"),
                "user": name,
                "details": {
                    "movie_id": review.get("movie_id"),
                    "tv_show_id": review.get("tv_show_id"),
                    "content_title": title(review),
                    "rating": review.get("rating"),
                },
            })
        for entry in watchlist:
            name = user_name(entry["user_id"])
            activities.append({
                "id": f"watchlist_{entry['id']}",
                "type": "watchlist",
                "description": f'{name} added "{title(entry)}" to their watchlist',
                "timestamp": entry.get("added_at"),
                "user": name,
                "details": {"movie_id": entry.get("movie_id"), "tv_show_id": entry.get("tv_show_id")},
            })
        for conversation in conversations:
            activities.append({
                "id": f"chatbot_{conversation['id']}",
                "type": "chatbot",
                "description": f"Chatbot asked: {conversation['user_message'][:80]}",
                "timestamp": conversation.get("created_at"),
                "user": None,
                "details": {"bot_response": conversation.get("bot_response")},
            })

        activities.sort(key=_timestamp_key, reverse=True)
        page = activities[offset:offset + limit]
        return {"activities": page, "total": len(activities), "limit": limit, "offset": offset}

    # ------------------------------------------------------------------
    # 导出与建表
    # ------------------------------------------------------------------
    def export(self, table: str, fmt: str = "json") -> Tuple[Any, str]:
        """返回 (内容, 文件名)；json 格式内容为行列表，csv 为字符串。"""
        if table not in EXPORT_TABLES:
            raise ValidationException(f"Invalid export type: {table}", "table")
        if fmt not in EXPORT_FORMATS:
            raise ValidationException(f"Invalid export format: {fmt}", "format")

        rows = self.db.table(table).select("*").order("id").execute().data
        filename = f"{table}-export-{datetime.now(timezone.utc).date().isoformat()}.{fmt}"
        if fmt == "json":
            return rows, filename
        columns = self.db.metadata.tables[table].columns.keys()
        return to_csv(columns, rows), filename

    def setup_database(self) -> Dict[str, Any]:
        created = self.db.create_tables()
        return {
            "message": "Database schema is ready",
            "created": created,
            "tables": self.db.table_names,
        }


def to_csv(columns: Sequence[str], rows: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return buffer.getvalue()


def _timestamp_key(item: Dict[str, Any]) -> str:
    value = item.get("timestamp")
    return value.isoformat() if hasattr(value, "isoformat") else str(value or "")
