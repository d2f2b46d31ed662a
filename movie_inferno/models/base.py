"""
声明式 Base。数据库引擎与连接池在 movie_inferno.core.database 中创建。
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
