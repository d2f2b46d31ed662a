"""
关键词聊天推荐。

识别用户想看电影、剧集还是都要，以及提到的类型；按评分从高到低取片库内容，
对话写入 chatbot_conversations（写入失败不影响回复）。
"""
from typing import Any, Dict, List

from movie_inferno.core.chatbot_rules import (
    MOVIES_ONLY,
    NO_RESULTS_TEXT,
    TV_ONLY,
    Intent,
    contains_any,
    detect_intent,
    fallback_keywords,
    response_text,
)
from movie_inferno.core.database import DatabaseClient
from movie_inferno.logger import logger
from movie_inferno.services.content_service import MOVIE, TV, ContentKind, ContentService, release_year
from movie_inferno.utils.exceptions import DatabaseException, ValidationException

SINGLE_SCOPE_LIMIT = 10
MIXED_SCOPE_LIMIT = 6
FALLBACK_POOL = 20
RECOMMEND_FIELDS = "id, title, poster, synopsis, rating"


class ChatbotService:
    def __init__(self, db: DatabaseClient):
        self.db = db
        self.content = ContentService(db)

    def reply(self, message: str) -> Dict[str, Any]:
        if not message or not message.strip():
            raise ValidationException("Message is required", "message")

        intent = detect_intent(message)
        logger.info(f"聊天意图: scope={intent.scope}, genres={intent.genres}")

        movies: List[Dict[str, Any]] = []
        tv_shows: List[Dict[str, Any]] = []
        if intent.scope == MOVIES_ONLY:
            movies = self.recommend(MOVIE, intent, SINGLE_SCOPE_LIMIT)
        elif intent.scope == TV_ONLY:
            tv_shows = self.recommend(TV, intent, SINGLE_SCOPE_LIMIT)
        else:
            movies = self.recommend(MOVIE, intent, MIXED_SCOPE_LIMIT)
            tv_shows = self.recommend(TV, intent, MIXED_SCOPE_LIMIT)

        response = response_text(intent)
        if not movies and not tv_shows:
            response = NO_RESULTS_TEXT

        self.store_conversation(message, response)
        return {"response": response, "movies": movies, "tvShows": tv_shows}

    def recommend(self, kind: ContentKind, intent: Intent, limit: int) -> List[Dict[str, Any]]:
        try:
            if intent.genres:
                rows = self._by_genres(kind, intent.genres, limit)
                if not rows:
                    rows = self._by_keywords(kind, intent.genres, limit)
            else:
                rows = self._top_rated(kind, limit)
            genres = self.content.genre_names(kind, [row["id"] for row in rows])
        except DatabaseException as exc:
            logger.error(f"推荐查询失败 ({kind.table}): {exc.message}")
            return []
        return [self._present(kind, row, genres.get(row["id"], [])) for row in rows]

    def _select(self, kind: ContentKind):
        return self.db.table(kind.table).select(f"{RECOMMEND_FIELDS}, {kind.date_column}")

    def _top_rated(self, kind: ContentKind, limit: int) -> List[Dict[str, Any]]:
        return self._select(kind).order("rating", ascending=False).limit(limit).execute().data

    def _by_genres(self, kind: ContentKind, genres: List[str], limit: int) -> List[Dict[str, Any]]:
        genre_ids = [
            row["id"] for row in self.db.table("genres").select("id").in_("name", genres).execute().data
        ]
        owner_ids = self.content.owners_in_genres(kind, genre_ids)
        if not owner_ids:
            return []
        return (
            self._select(kind)
            .in_("id", owner_ids)
            .order("rating", ascending=False)
            .limit(limit)
            .execute()
            .data
        )

    def _by_keywords(self, kind: ContentKind, genres: List[str], limit: int) -> List[Dict[str, Any]]:
        keywords = fallback_keywords(genres)
        logger.info(f"类型关联无结果，按关键词在 {kind.table} 标题/简介中查找: {keywords}")
        pool = self._top_rated(kind, FALLBACK_POOL)
        matched = [
            row for row in pool
            if contains_any(f"{row.get('title') or ''} {row.get('synopsis') or ''}".lower(), keywords)
        ]
        return matched[:limit]

    @staticmethod
    def _present(kind: ContentKind, row: Dict[str, Any], genres: List[str]) -> Dict[str, Any]:
        return {
            **row,
            "poster_url": row.get("poster"),
            "description": row.get("synopsis"),
            kind.year_key: release_year(row.get(kind.date_column)),
            "genres": genres,
        }

    def store_conversation(self, message: str, response: str) -> None:
        try:
            self.db.table("chatbot_conversations").insert(
                {"user_message": message, "bot_response": response}
            )
        except DatabaseException as exc:
            logger.error(f"保存聊天记录失败: {exc.message}")
