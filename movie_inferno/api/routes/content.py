from fastapi import APIRouter, Depends, Query

from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db
from movie_inferno.services.content_service import MOVIE, TV, ContentService

router = APIRouter(tags=["content"])


def get_content_service(db: DatabaseClient = Depends(get_db)) -> ContentService:
    return ContentService(db)


@router.get("/movies")
async def list_movies(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ContentService = Depends(get_content_service),
):
    return service.list_content(MOVIE, limit=limit, offset=offset)


@router.get("/movie/{movie_id}")
async def get_movie(movie_id: int, service: ContentService = Depends(get_content_service)):
    return service.get_content(MOVIE, movie_id)


@router.get("/tv")
async def list_tv_shows(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ContentService = Depends(get_content_service),
):
    return service.list_content(TV, limit=limit, offset=offset)


@router.get("/tv/{tv_id}")
async def get_tv_show(tv_id: int, service: ContentService = Depends(get_content_service)):
    return service.get_content(TV, tv_id)


@router.get("/person/{person_id}")
async def get_person(person_id: int, service: ContentService = Depends(get_content_service)):
    return service.get_person(person_id)


@router.get("/genres")
async def list_genres(service: ContentService = Depends(get_content_service)):
    return service.list_genres()


@router.get("/genre/{content_type}/{genre_id}")
async def genre_content(
    content_type: str,
    genre_id: int,
    limit: int = Query(50, ge=1, le=500),
    service: ContentService = Depends(get_content_service),
):
    return service.by_genre(content_type, genre_id, limit=limit)


@router.get("/content/stats")
async def content_stats(service: ContentService = Depends(get_content_service)):
    return service.stats()


@router.get("/content/trending")
async def trending(
    type: str = Query("all", pattern="^(all|movie|tv)$"),
    limit: int = Query(10, ge=1, le=100),
    service: ContentService = Depends(get_content_service),
):
    return service.trending(type, limit)


@router.get("/content/featured")
async def featured(
    limit: int = Query(6, ge=1, le=100),
    service: ContentService = Depends(get_content_service),
):
    return service.featured(limit)
