import re
from typing import Any, Dict, List

import httpx
import pytest

from movie_inferno.tmdb import TmdbClient

__all__ = ["FakeTmdb", "fake_tmdb", "make_tmdb", "API_BASE", "IMAGE_BASE"]

API_BASE = "https://tmdb.test/3"
IMAGE_BASE = "https://img.test/t/p/"

DETAIL_PATH = re.compile(r"(movie|tv|person|collection)/(\d+)")
GENRE_PATH = re.compile(r"genre/(movie|tv)/list")


def movie_detail(movie_id: int) -> Dict:
    genre = {"id": 28, "name": "Action"} if movie_id % 2 else {"id": 18, "name": "Drama"}
    return {
        "id": movie_id,
        "title": f"Movie {movie_id}",
        "overview": f"Synopsis of movie {movie_id}",
        "release_date": "2020-01-15",
        "poster_path": f"/m{movie_id}.jpg",
        "backdrop_path": f"/b{movie_id}.jpg",
        "vote_average": 5.0 + movie_id / 10,
        "vote_count": 100 * movie_id,
        "runtime": 110,
        "budget": 1000000,
        "revenue": 5000000,
        "original_language": "en",
        "popularity": float(movie_id),
        "genres": [genre],
        "belongs_to_collection": (
            {"id": 10, "name": "Test Saga", "poster_path": "/saga.jpg", "backdrop_path": None}
            if movie_id == 1 else None
        ),
        "credits": {
            "cast": [
                {"id": 1000 + i, "name": f"Actor {i}", "character": f"Role {i}", "order": i}
                for i in range(12)
            ],
            "crew": [
                {"id": 2000 + movie_id, "name": f"Director {movie_id}", "job": "Director",
                 "department": "Directing"},
                {"id": 3000, "name": "Best Boy", "job": "Grip", "department": "Crew"},
            ],
        },
    }


def tv_detail(tv_id: int) -> Dict:
    return {
        "id": tv_id,
        "name": f"Show {tv_id}",
        "overview": f"Synopsis of show {tv_id}",
        "first_air_date": "2019-05-01",
        "last_air_date": "",
        "poster_path": f"/t{tv_id}.jpg",
        "vote_average": 8.0,
        "vote_count": 500,
        "number_of_seasons": 2,
        "number_of_episodes": 20,
        "status": "Returning Series",
        "original_language": "en",
        "popularity": 50.0 + tv_id,
        "genres": [{"id": 18, "name": "Drama"}],
        "created_by": [{"id": 4000 + tv_id, "name": f"Creator {tv_id}"}],
        "credits": {
            "cast": [{"id": 1000 + i, "name": f"Actor {i}", "character": f"Role {i}", "order": i}
                     for i in range(3)],
            "crew": [],
        },
    }


def person_detail(person_id: int) -> Dict:
    return {
        "id": person_id,
        "name": f"Person {person_id}",
        "biography": "Born somewhere.",
        "birthday": "1970-02-03",
        "deathday": None,
        "place_of_birth": "Somewhere",
        "profile_path": f"/p{person_id}.jpg",
        "popularity": 12.5,
        "known_for_department": "Acting",
    }


def collection_detail(collection_id: int) -> Dict:
    parts = [{"id": 1}, {"id": 2}, {"id": 999}] if collection_id == 10 else []
    return {
        "id": collection_id,
        "name": f"Collection {collection_id}",
        "overview": "A collection.",
        "poster_path": None,
        "backdrop_path": None,
        "parts": parts,
    }


DETAILS = {
    "movie": movie_detail,
    "tv": tv_detail,
    "person": person_detail,
    "collection": collection_detail,
}


class FakeTmdb:
    """按路径返回固定数据的 TMDB 替身，记录每次请求路径与参数。"""

    def __init__(self):
        self.calls: List[str] = []
        self.params: List[Dict[str, str]] = []
        # 相对路径 -> HTTP 状态码
        self.failures: Dict[str, int] = {}
        # 相对路径 -> 原样返回的 JSON
        self.payloads: Dict[str, Any] = {}
        self.lists: Dict[str, List[int]] = {
            "movie/popular": [1, 2, 3],
            "movie/top_rated": [2, 3, 4],
            "movie/upcoming": [5],
            "trending/movie/week": [1],
            "tv/popular": [100, 101],
            "trending/tv/week": [100],
            "person/popular": [500, 501],
        }
        self.genres = {
            "movie": [{"id": 28, "name": "Action"}, {"id": 18, "name": "Drama"}, {"id": 35, "name": "Comedy"}],
            "tv": [{"id": 18, "name": "Drama"}, {"id": 10765, "name": "Sci-Fi & Fantasy"}],
        }

    def call_count(self, path: str) -> int:
        return self.calls.count(path)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/3/"):]
        self.calls.append(path)
        self.params.append(dict(request.url.params))

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"status_message": "failure"})
        if path in self.payloads:
            return httpx.Response(200, json=self.payloads[path])

        match = GENRE_PATH.fullmatch(path)
        if match:
            return httpx.Response(200, json={"genres": self.genres[match.group(1)]})

        match = DETAIL_PATH.fullmatch(path)
        if match:
            return httpx.Response(200, json=DETAILS[match.group(1)](int(match.group(2))))

        ids = self.lists.get(path, [])
        return httpx.Response(
            200,
            json={"page": 1, "results": [{"id": i} for i in ids], "total_pages": 1},
        )


@pytest.fixture
def fake_tmdb():
    return FakeTmdb()


@pytest.fixture
def make_tmdb(fake_tmdb):
    """返回 TmdbClient 工厂，测试中用 async with 管理生命周期。"""

    def factory(**kwargs) -> TmdbClient:
        options = {
            "api_base": API_BASE,
            "image_base": IMAGE_BASE,
            "language": "en-US",
            "request_delay": 0,
            "max_retries": 3,
            "transport": fake_tmdb.transport(),
        }
        options.update(kwargs)
        return TmdbClient("test-key", **options)

    return factory
