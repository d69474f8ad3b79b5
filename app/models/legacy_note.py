"""
旧版笔记模型 - 迁移工具的数据来源
"""

from sqlalchemy import Column, String, Text, JSON

from app.db.base import BaseModel


class LegacyNote(BaseModel):
    """旧版扁平表笔记"""
    __tablename__ = "notes"

    user_id = Column(String(255), nullable=False, index=True, comment="所属用户ID")
    title = Column(String(500), comment="标题")
    content = Column(Text, comment="笔记内容(摘要)")
    transcription = Column(Text, comment="转录文本")
    raw_summary = Column(Text, comment="模型原始输出")
    structured_summary = Column(JSON, comment="结构化摘要")
    audio_url = Column(String(2048), comment="音频URL")
