"""
旧版笔记迁移API端点
"""

from fastapi import APIRouter, Depends
from typing import Dict, Any

from app.core.auth import get_current_user_id
from app.services.migration import get_migration_service, MigrationService


router = APIRouter()


@router.post("/migrate", summary="迁移旧版笔记")
async def migrate_notes(
    user_id: str = Depends(get_current_user_id),
    service: MigrationService = Depends(get_migration_service)
) -> Dict[str, Any]:
    """将旧版notes表中当前用户的笔记迁移到桶存储，可重复执行"""
    result = await service.migrate(user_id)
    return {
        "success": result.success,
        "data": result.model_dump()
    }
