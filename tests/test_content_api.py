from tests.fixtures.db import add_users


def test_list_movies_ordered_by_rating(client):
    resp = client.get("/api/movies")

    assert resp.status_code == 200
    assert [m["id"] for m in resp.json()] == [278, 238, 155]


def test_list_movies_paging(client):
    resp = client.get("/api/movies", params={"limit": 1, "offset": 1})

    assert [m["id"] for m in resp.json()] == [238]


def test_movie_detail_includes_genres_and_credits(client, catalogue_db):
    catalogue_db.table("people").insert({"id": 1, "name": "Christian Bale"})
    catalogue_db.table("movie_credits").insert(
        {"movie_id": 155, "person_id": 1, "job": "Actor", "character_name": "Batman", "order_index": 0}
    )

    resp = client.get("/api/movie/155")

    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "The Dark Knight"
    assert body["release_date"] == "2008-07-16"
    assert set(body["genres"]) == {"Action", "Crime", "Drama"}
    assert body["credits"] == [{
        "person_id": 1,
        "job": "Actor",
        "character_name": "Batman",
        "department": None,
        "order_index": 0,
        "name": "Christian Bale",
        "profile_path": None,
    }]


def test_missing_movie_is_404(client):
    resp = client.get("/api/movie/999")

    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "NOT_FOUND"
    assert "999" in body["error"]


def test_tv_list_and_detail(client):
    shows = client.get("/api/tv").json()
    show = client.get("/api/tv/1399").json()

    assert [s["id"] for s in shows] == [1396, 1399]
    assert show["title"] == "Game of Thrones"
    assert set(show["genres"]) == {"Action", "Adventure", "Drama"}


def test_person_with_credits(client, catalogue_db):
    catalogue_db.table("people").insert({"id": 7, "name": "Bryan Cranston"})
    catalogue_db.table("tv_show_credits").insert(
        {"tv_show_id": 1396, "person_id": 7, "job": "Actor", "character_name": "Walter White"}
    )

    body = client.get("/api/person/7").json()

    assert body["name"] == "Bryan Cranston"
    assert body["movie_credits"] == []
    assert body["tv_credits"][0]["title"] == "Breaking Bad"
    assert body["tv_credits"][0]["character_name"] == "Walter White"
    assert client.get("/api/person/8").status_code == 404


def test_genres_sorted_by_name(client):
    names = [g["name"] for g in client.get("/api/genres").json()]

    assert names == sorted(names)
    assert len(names) == 5


def test_content_by_genre(client):
    movies = client.get("/api/genre/movie/80").json()
    shows = client.get("/api/genre/tv/12").json()

    assert [m["id"] for m in movies] == [238, 155]
    assert [s["id"] for s in shows] == [1399]


def test_invalid_genre_type_is_400(client):
    resp = client.get("/api/genre/anime/16")

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR_type"


def test_content_stats(client, catalogue_db):
    add_users(catalogue_db, {"id": 1, "email": "a@example.com"})

    assert client.get("/api/content/stats").json() == {
        "movies": 3,
        "tv_shows": 2,
        "users": 1,
        "reviews": 0,
    }


def test_trending_by_popularity(client):
    movies = client.get("/api/content/trending", params={"type": "movie", "limit": 2}).json()
    mixed = client.get("/api/content/trending").json()

    assert [m["id"] for m in movies["content"]] == [155, 278]
    assert movies["type"] == "movie"
    assert [c["id"] for c in mixed["content"]] == [1396, 1399, 155, 278, 238]
    assert {c["type"] for c in mixed["content"]} == {"movie", "tv"}


def test_featured_requires_rating_and_votes(client, catalogue_db):
    catalogue_db.table("movies").insert(
        {"id": 1, "title": "Obscure Gem", "rating": 8.5, "vote_count": 10, "popularity": 999.0}
    )

    body = client.get("/api/content/featured").json()

    ids = [c["id"] for c in body["content"]]
    assert 1 not in ids
    assert ids == [1396, 1399, 155, 278, 238]
    assert body["total"] == 5
