"""
文件夹数据模型
"""

from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Folder(BaseModel):
    """文件夹模型 - parent_id构成的图必须无环"""
    __tablename__ = "folders"

    user_id = Column(String(255), nullable=False, index=True, comment="所属用户ID")
    name = Column(String(255), nullable=False, comment="文件夹名称")
    parent_id = Column(
        String(64),
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="父文件夹ID，为空表示根目录"
    )

    notes = relationship("NoteMetadata", back_populates="folder", passive_deletes=True)

    def __repr__(self):
        return f"<Folder(id={self.id}, name='{self.name}', parent_id={self.parent_id})>"
