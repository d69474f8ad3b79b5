"""
笔记元数据模型
"""

from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class NoteMetadata(BaseModel):
    """笔记元数据 - 笔记正文以JSON文档形式保存在notes桶中"""
    __tablename__ = "note_metadata"

    user_id = Column(String(255), nullable=False, index=True, comment="所属用户ID")
    title = Column(String(500), nullable=False, default="Untitled Note", comment="笔记标题")
    preview = Column(Text, comment="摘要预览")
    note_path = Column(String(1024), nullable=False, comment="笔记JSON文档在notes桶中的路径")
    audio_path = Column(String(2048), comment="音频引用: notes桶内路径或原始URL")
    folder_id = Column(
        String(64),
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="所在文件夹ID"
    )

    folder = relationship("Folder", back_populates="notes")

    def __repr__(self):
        return f"<NoteMetadata(id={self.id}, user_id={self.user_id}, title='{self.title}')>"
