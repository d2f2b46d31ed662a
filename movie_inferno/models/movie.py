from sqlalchemy import BigInteger, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from movie_inferno.models.base import Base


class Movie(Base):
    __tablename__ = "movies"

    # TMDB id 直接作为主键
    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String, nullable=False)
    release_date = Column(Date, nullable=True)
    poster = Column(String, nullable=True)
    synopsis = Column(Text, nullable=True)
    rating = Column(Float, nullable=True)
    vote_count = Column(Integer, nullable=True)
    duration = Column(Integer, nullable=True)
    budget = Column(BigInteger, nullable=True)
    revenue = Column(BigInteger, nullable=True)
    original_language = Column(String, nullable=True)
    backdrop_path = Column(String, nullable=True)
    popularity = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class MovieGenre(Base):
    __tablename__ = "movie_genres"

    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)


class MovieCredit(Base):
    __tablename__ = "movie_credits"

    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    person_id = Column(Integer, ForeignKey("people.id", ondelete="CASCADE"), primary_key=True)
    job = Column(String, primary_key=True)
    character_name = Column(String, nullable=True)
    department = Column(String, nullable=True)
    order_index = Column(Integer, nullable=True)


class MovieCollection(Base):
    __tablename__ = "movie_collections"

    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    collection_id = Column(Integer, ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True)
