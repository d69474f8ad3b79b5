"""
结构化摘要模式
"""

from typing import List
from pydantic import BaseModel, Field


class Subsection(BaseModel):
    """小节"""
    title: str = Field(..., description="小节标题")
    content: str = Field(default="", description="小节内容(markdown)")


class Section(BaseModel):
    """章节"""
    title: str = Field(..., description="章节标题")
    content: str = Field(default="", description="章节内容(markdown)")
    subsections: List[Subsection] = Field(default_factory=list, description="小节列表")


class StructuredSummary(BaseModel):
    """从markdown笔记解析出的结构化摘要"""
    summary: str = Field(default="", description="概述段落")
    key_points: List[str] = Field(default_factory=list, alias="keyPoints", description="要点列表")
    sections: List[Section] = Field(default_factory=list, description="章节列表")

    class Config:
        populate_by_name = True
