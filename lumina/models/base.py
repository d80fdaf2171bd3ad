# lumina/models/base.py
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, DateTime

from lumina.utils.helpers import utc_now

Base = declarative_base()


class BaseModel(Base):
    """带自增主键和UTC时间戳的表基类"""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    # 集合每次整体替换都会刷新
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
