from datetime import date, datetime

import pytest

from movie_inferno.utils.exceptions import (
    DatabaseException,
    InvalidIdentifierError,
    QueryBuilderError,
    QueryConsumedError,
    ValidationException,
)


def test_eq_and_limit_return_matching_rows(catalogue_db):
    result = catalogue_db.table("movies").select("id, title").eq("id", 238).limit(1).execute()

    assert result.count == 1
    assert result.data == [{"id": 238, "title": "The Godfather"}]


def test_order_descending_by_rating(catalogue_db):
    rows = catalogue_db.table("movies").select("id, rating").order("rating", ascending=False).execute().data

    assert [r["id"] for r in rows] == [278, 238, 155]


def test_multiple_orders_are_applied_in_sequence(catalogue_db):
    sql = catalogue_db.table("movies").order("rating", ascending=False).order("id").to_sql()
    order_sql = sql.split("ORDER BY", 1)[1]

    assert order_sql.index("rating DESC NULLS LAST") < order_sql.index("id ASC NULLS LAST")


def test_placeholders_follow_accumulation_order(catalogue_db):
    query = (
        catalogue_db.table("movies")
        .eq("title", "The Godfather")
        .gt("rating", 5)
        .in_("id", [238, 278])
    )
    sql = query.to_sql()

    assert sql.index(":p1") < sql.index(":p2") < sql.index(":p3") < sql.index(":p4")
    assert " AND " in sql
    assert query.params() == {"p1": "The Godfather", "p2": 5, "p3": 238, "p4": 278}
    assert [r["id"] for r in query.execute().data] == [238]


def test_values_are_bound_not_interpolated(catalogue_db):
    hostile = "x'; DROP TABLE movies; --"
    query = catalogue_db.table("movies").eq("title", hostile)

    assert hostile not in query.to_sql()
    assert query.execute().data == []
    assert catalogue_db.table("movies").count().count == 3


def test_unknown_table_is_rejected(db):
    with pytest.raises(InvalidIdentifierError) as exc_info:
        db.table("movies; DROP TABLE users")
    assert exc_info.value.code == "INVALID_IDENTIFIER"


@pytest.mark.parametrize(
    "build",
    [
        lambda q: q.select("id, title; --"),
        lambda q: q.eq("1=1 OR id", 1),
        lambda q: q.order("rating DESC"),
        lambda q: q.upsert({"id": 1, "title": "x"}, on_conflict="nope"),
        lambda q: q.insert({"id": 1, "unknown_column": "x"}),
    ],
)
def test_unknown_columns_are_rejected(db, build):
    with pytest.raises(InvalidIdentifierError):
        build(db.table("movies"))


def test_builder_is_single_use(catalogue_db):
    query = catalogue_db.table("movies").eq("id", 155)
    query.execute()

    assert query.consumed
    with pytest.raises(QueryConsumedError):
        query.execute()
    with pytest.raises(QueryConsumedError):
        query.eq("id", 278)


def test_single_returns_row_or_none(catalogue_db):
    movie = catalogue_db.table("movies").select("title").eq("id", 155).single().execute().data
    missing = catalogue_db.table("movies").eq("id", 1).single().execute().data

    assert movie == {"title": "The Dark Knight"}
    assert missing is None


def test_range_is_inclusive(catalogue_db):
    rows = (
        catalogue_db.table("movies")
        .select("id")
        .order("rating", ascending=False)
        .range(1, 2)
        .execute()
        .data
    )

    assert [r["id"] for r in rows] == [238, 155]


def test_in_with_empty_list_matches_nothing(catalogue_db):
    assert catalogue_db.table("movies").in_("id", []).execute().data == []


def test_ilike_is_case_insensitive_on_sqlite(catalogue_db):
    rows = catalogue_db.table("movies").select("id").ilike("title", "%dark%").execute().data

    assert [r["id"] for r in rows] == [155]


def test_like_neq_and_range_predicates(catalogue_db):
    rows = (
        catalogue_db.table("movies")
        .select("id")
        .like("title", "The %")
        .neq("id", 278)
        .gte("rating", 9.0)
        .lte("rating", 9.2)
        .lt("vote_count", 30000)
        .execute()
        .data
    )

    assert [r["id"] for r in rows] == [238]


def test_is_null_and_not(catalogue_db):
    no_duration = catalogue_db.table("movies").is_("duration", None).count().count
    not_godfather = catalogue_db.table("movies").not_("title", "=", "The Godfather").count().count

    assert no_duration == 3
    assert not_godfather == 2


def test_is_and_not_reject_unsupported_values(db):
    with pytest.raises(QueryBuilderError):
        db.table("movies").is_("title", "yes")
    with pytest.raises(QueryBuilderError):
        db.table("movies").not_("title", "; DELETE", "x")


def test_insert_returns_rows_and_binds_dates(db):
    result = db.table("movies").insert(
        {"id": 1, "title": "Dated", "release_date": date(2001, 2, 3)}
    )

    assert result.data["id"] == 1
    stored = db.table("movies").select("release_date").eq("id", 1).single().execute().data
    assert stored["release_date"] == date(2001, 2, 3)


def test_upsert_is_idempotent_and_last_write_wins(db):
    rows = [{"id": 1, "name": "Action"}, {"id": 2, "name": "Drama"}]
    db.table("genres").upsert(rows)
    db.table("genres").upsert(rows)
    db.table("genres").upsert({"id": 2, "name": "Drama!"})

    data = db.table("genres").select("*").order("id").execute().data
    assert data == [{"id": 1, "name": "Action"}, {"id": 2, "name": "Drama!"}]


def test_upsert_composite_key_without_update_columns(db):
    db.table("movie_genres").upsert(
        [{"movie_id": 1, "genre_id": 28}, {"movie_id": 1, "genre_id": 28}],
        on_conflict="movie_id,genre_id",
    )
    db.table("movie_genres").upsert({"movie_id": 1, "genre_id": 28}, on_conflict="movie_id,genre_id")

    assert db.table("movie_genres").count().count == 1


def test_upsert_requires_conflict_columns_in_records(db):
    with pytest.raises(QueryBuilderError):
        db.table("genres").upsert({"name": "No id"})


def test_update_and_delete(catalogue_db):
    updated = catalogue_db.table("movies").eq("id", 155).update({"title": "TDK", "rating": 9.1})
    assert updated.count == 1
    assert updated.data[0]["title"] == "TDK"

    deleted = catalogue_db.table("movies").lt("rating", 9.15).delete()
    assert {r["id"] for r in deleted.data} == {155}
    assert catalogue_db.table("movies").count().count == 2


def test_count_with_filter(catalogue_db):
    assert catalogue_db.table("movie_genres").eq("genre_id", 18).count().count == 3


def test_driver_errors_are_wrapped(db):
    db.table("genres").insert({"id": 1, "name": "Action"})

    with pytest.raises(DatabaseException) as exc_info:
        db.table("genres").insert({"id": 1, "name": "Duplicate"})
    assert "genres" in exc_info.value.message


def test_iso_strings_are_bound_as_dates(db):
    db.table("users").insert(
        {"id": 1, "email": "a@example.com", "role": "user", "last_sign_in_at": "2024-05-01T10:00:00Z"}
    )
    db.table("movies").insert({"id": 1, "title": "Dated", "release_date": "2001-02-03"})

    user = db.table("users").select("last_sign_in_at").eq("id", 1).single().execute().data
    assert user["last_sign_in_at"].replace(tzinfo=None) == datetime(2024, 5, 1, 10, 0)
    assert db.table("users").gte("last_sign_in_at", "2024-05-01T00:00:00").count().count == 1
    assert db.table("movies").eq("release_date", "2001-02-03").count().count == 1


def test_malformed_date_strings_are_rejected(db):
    with pytest.raises(ValidationException):
        db.table("movies").insert({"id": 1, "title": "Dated", "release_date": "03/02/2001"})
    assert db.table("movies").count().count == 0
