"""
数据库基础配置
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase

# 数据库元数据配置
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s"
    }
)


def utcnow() -> datetime:
    """当前UTC时间"""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """生成客户端ID"""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """数据库模型基类"""
    metadata = metadata


class BaseModel(Base):
    """带字符串主键和时间戳的模型基类"""
    __abstract__ = True

    id = Column(String(64), primary_key=True, default=generate_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
