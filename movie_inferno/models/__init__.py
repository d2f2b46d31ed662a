"""
所有表在此注册到 Base.metadata，查询构造器以它作为表名/列名白名单。
"""
from movie_inferno.models.base import Base
from movie_inferno.models.collection import Collection
from movie_inferno.models.engagement import Award, ChatbotConversation, Review, Watchlist
from movie_inferno.models.genre import Genre
from movie_inferno.models.movie import Movie, MovieCollection, MovieCredit, MovieGenre
from movie_inferno.models.person import Person
from movie_inferno.models.tv_show import TVShow, TVShowCredit, TVShowGenre
from movie_inferno.models.user import User

__all__ = [
    "Base",
    "Award",
    "ChatbotConversation",
    "Collection",
    "Genre",
    "Movie",
    "MovieCollection",
    "MovieCredit",
    "MovieGenre",
    "Person",
    "Review",
    "TVShow",
    "TVShowCredit",
    "TVShowGenre",
    "User",
    "Watchlist",
]
