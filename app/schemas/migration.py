"""
迁移结果模式
"""

from typing import List
from pydantic import BaseModel, Field


class MigrationResult(BaseModel):
    """迁移结果，success 当且仅当 errors 为空"""
    success: bool = Field(..., description="是否全部成功")
    count: int = Field(default=0, description="成功迁移的笔记数")
    errors: List[str] = Field(default_factory=list, description="逐条错误信息")
