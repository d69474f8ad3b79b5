"""
转录/摘要网关的请求与响应模式
"""

from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.summary import StructuredSummary


class SummarizeRequest(BaseModel):
    """摘要请求: audioUrl(音频模式) 或 audioText(文本模式)"""
    audio_url: Optional[str] = Field(None, alias="audioUrl", description="音频公开URL")
    audio_text: Optional[str] = Field(None, alias="audioText", description="已有的转录文本")
    content_type: Optional[str] = Field(None, alias="contentType", description="音频MIME类型")
    file_name: Optional[str] = Field(None, alias="fileName", description="原始文件名")

    class Config:
        populate_by_name = True


class GatewayResult(BaseModel):
    """网关处理结果"""
    transcription: str = Field(..., description="转录文本")
    summary: str = Field(default="", description="markdown笔记")
    raw_summary: str = Field(default="", alias="rawSummary", description="模型原始输出")
    structured_summary: StructuredSummary = Field(
        default_factory=StructuredSummary, alias="structuredSummary", description="结构化摘要"
    )

    class Config:
        populate_by_name = True


class UploadedAudio(BaseModel):
    """上传到临时桶的音频"""
    path: str = Field(..., description="uploads桶内路径")
    url: str = Field(..., description="公开访问URL")
    content_type: str = Field(..., description="MIME类型")
    size: int = Field(..., description="字节数")


class ProcessedAudio(BaseModel):
    """完整处理流程的结果"""
    note_id: str = Field(..., description="新建笔记ID")
    title: str = Field(..., description="笔记标题")
    result: GatewayResult = Field(..., description="网关结果")
