from sqlalchemy import Column, Integer, String, Text

from movie_inferno.models.base import Base


class Collection(Base):
    __tablename__ = "collections"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    overview = Column(Text, nullable=True)
    poster = Column(String, nullable=True)
    backdrop_path = Column(String, nullable=True)
