"""
笔记相关的Pydantic模式
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.schemas.summary import StructuredSummary


class NoteData(BaseModel):
    """完整笔记文档，以camelCase键保存为note.json"""
    id: Optional[str] = Field(None, description="笔记ID，为空时保存时生成")
    title: str = Field(default="Untitled Note", description="笔记标题")
    transcription: str = Field(default="", description="转录文本")
    summary: str = Field(default="", description="markdown笔记")
    raw_summary: Optional[str] = Field(None, alias="rawSummary", description="模型原始输出")
    structured_summary: Optional[StructuredSummary] = Field(
        None, alias="structuredSummary", description="结构化摘要"
    )
    audio_url: Optional[str] = Field(None, alias="audioUrl", description="音频URL")
    folder_id: Optional[str] = Field(None, alias="folderId", description="所在文件夹ID")
    created_at: Optional[datetime] = Field(None, alias="createdAt", description="创建时间")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt", description="更新时间")

    class Config:
        populate_by_name = True

    def to_document(self) -> dict:
        """序列化为存储文档(音频引用只保存在元数据中)"""
        return self.model_dump(mode="json", by_alias=True, exclude={"audio_url"})


class NoteMetadataResponse(BaseModel):
    """笔记元数据响应模式"""
    id: str = Field(..., description="笔记ID")
    title: str = Field(..., description="笔记标题")
    preview: Optional[str] = Field(None, description="摘要预览")
    note_path: str = Field(..., description="笔记文档路径")
    audio_path: Optional[str] = Field(None, description="音频引用")
    folder_id: Optional[str] = Field(None, description="所在文件夹ID")
    created_at: datetime = Field(..., description="创建时间")
    updated_at: datetime = Field(..., description="更新时间")

    class Config:
        from_attributes = True


class NoteCreate(BaseModel):
    """创建空白笔记请求模式"""
    title: str = Field(default="Untitled Note", description="笔记标题", min_length=1, max_length=500)
    folder_id: Optional[str] = Field(None, alias="folderId", description="所在文件夹ID")

    class Config:
        populate_by_name = True


class NoteTitleUpdate(BaseModel):
    """更新标题请求模式"""
    title: str = Field(..., description="笔记标题", min_length=1, max_length=500)


class NoteContentUpdate(BaseModel):
    """更新笔记内容请求模式，未提供的字段保持不变"""
    transcription: Optional[str] = Field(None, description="转录文本")
    summary: Optional[str] = Field(None, description="markdown笔记")
    raw_summary: Optional[str] = Field(None, alias="rawSummary", description="模型原始输出")
    structured_summary: Optional[StructuredSummary] = Field(
        None, alias="structuredSummary", description="结构化摘要"
    )
    autosave: bool = Field(default=False, description="是否以防抖方式延迟保存")

    class Config:
        populate_by_name = True

    def changes(self) -> dict:
        """返回需要写入的字段，转录和笔记正文为null时视为未提供"""
        changes = self.model_dump(exclude_unset=True, exclude={"autosave"})
        for key in ("transcription", "summary"):
            if key in changes and changes[key] is None:
                del changes[key]
        return changes


class NoteFolderUpdate(BaseModel):
    """移动笔记请求模式"""
    folder_id: Optional[str] = Field(None, alias="folderId", description="目标文件夹ID，为空表示根目录")

    class Config:
        populate_by_name = True
