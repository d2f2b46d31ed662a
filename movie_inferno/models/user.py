from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from movie_inferno.models.base import Base


class User(Base):
    """身份由外部提供方管理，这里只保存资料与角色。"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    username = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user", server_default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
