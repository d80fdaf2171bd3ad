from sqlalchemy import Column, String, Text, UniqueConstraint
from .base import BaseModel


"""
集合存储模型
每一行是一个档案（namespace）下的一个键，值为整段JSON文本，整体读取、整体替换。
"""

class StoredCollection(BaseModel):
    __tablename__ = "stored_collections"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_stored_collections_namespace_key"),
    )

    namespace = Column(String(100), nullable=False, index=True)
    key = Column(String(200), nullable=False)
    value = Column(Text, nullable=False, default="[]")
