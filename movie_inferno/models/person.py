from sqlalchemy import Column, Date, Float, Integer, String, Text

from movie_inferno.models.base import Base


class Person(Base):
    __tablename__ = "people"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    biography = Column(Text, nullable=True)
    birthday = Column(Date, nullable=True)
    deathday = Column(Date, nullable=True)
    place_of_birth = Column(String, nullable=True)
    profile_path = Column(String, nullable=True)
    popularity = Column(Float, nullable=True)
    known_for_department = Column(String, nullable=True)
