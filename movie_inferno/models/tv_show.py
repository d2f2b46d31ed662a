from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from movie_inferno.models.base import Base


class TVShow(Base):
    __tablename__ = "tv_shows"

    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String, nullable=False)
    first_air_date = Column(Date, nullable=True)
    last_air_date = Column(Date, nullable=True)
    poster = Column(String, nullable=True)
    synopsis = Column(Text, nullable=True)
    rating = Column(Float, nullable=True)
    vote_count = Column(Integer, nullable=True)
    number_of_seasons = Column(Integer, nullable=True)
    number_of_episodes = Column(Integer, nullable=True)
    status = Column(String, nullable=True)
    original_language = Column(String, nullable=True)
    backdrop_path = Column(String, nullable=True)
    popularity = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class TVShowGenre(Base):
    __tablename__ = "tv_show_genres"

    tv_show_id = Column(Integer, ForeignKey("tv_shows.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)


class TVShowCredit(Base):
    __tablename__ = "tv_show_credits"

    tv_show_id = Column(Integer, ForeignKey("tv_shows.id", ondelete="CASCADE"), primary_key=True)
    person_id = Column(Integer, ForeignKey("people.id", ondelete="CASCADE"), primary_key=True)
    job = Column(String, primary_key=True)
    character_name = Column(String, nullable=True)
    department = Column(String, nullable=True)
    order_index = Column(Integer, nullable=True)
