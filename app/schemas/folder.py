"""
文件夹相关的Pydantic模式
"""

from datetime import datetime
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field


class FolderCreate(BaseModel):
    """创建文件夹请求模式"""
    name: str = Field(..., description="文件夹名称", min_length=1, max_length=255)
    parent_id: Optional[str] = Field(None, alias="parentId", description="父文件夹ID")

    class Config:
        populate_by_name = True


class FolderRename(BaseModel):
    """重命名文件夹请求模式"""
    name: str = Field(..., description="文件夹名称", min_length=1, max_length=255)


class FolderMove(BaseModel):
    """移动文件夹请求模式"""
    parent_id: Optional[str] = Field(None, alias="parentId", description="新的父文件夹ID，为空表示根目录")

    class Config:
        populate_by_name = True


class FolderResponse(BaseModel):
    """文件夹响应模式"""
    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NoteItem(BaseModel):
    """文件夹树中的笔记叶子节点"""
    type: Literal["note"] = "note"
    id: str
    title: str
    preview: Optional[str] = None
    folder_id: Optional[str] = None
    created_at: Optional[datetime] = None


class FolderNode(BaseModel):
    """文件夹树节点"""
    type: Literal["folder"] = "folder"
    id: str
    name: str
    parent_id: Optional[str] = None
    children: List[Union["FolderNode", NoteItem]] = Field(default_factory=list)


FolderNode.model_rebuild()
