"""
迁移工具 - 将旧版notes表中的笔记迁移到桶存储
"""

from typing import Optional

from sqlalchemy import select

from app.core.logging import service_logger as logger
from app.db.base import utcnow
from app.db.session import AsyncSessionLocal
from app.models.legacy_note import LegacyNote
from app.models.note_metadata import NoteMetadata
from app.schemas.migration import MigrationResult
from app.schemas.note import NoteData
from app.schemas.summary import StructuredSummary
from app.services.note import NoteService, get_note_service


class MigrationService:
    """旧版笔记迁移服务"""

    def __init__(self, session_factory=None, note_service: Optional[NoteService] = None):
        self.session_factory = session_factory or AsyncSessionLocal
        self._note_service = note_service

    @property
    def note_service(self) -> NoteService:
        return self._note_service or get_note_service()

    def to_note_data(self, row: LegacyNote, folder_id: Optional[str] = None) -> NoteData:
        """旧版行 -> 笔记文档，沿用原ID以保证重复迁移不产生副本"""
        structured = None
        if row.structured_summary:
            structured = StructuredSummary.model_validate(row.structured_summary)

        return NoteData(
            id=row.id,
            title=row.title or "Untitled Note",
            transcription=row.transcription or "",
            summary=row.raw_summary or row.content or "",
            raw_summary=row.raw_summary,
            structured_summary=structured,
            audio_url=row.audio_url,
            folder_id=folder_id,
            created_at=row.created_at,
            updated_at=utcnow()
        )

    async def migrate(self, user_id: str) -> MigrationResult:
        """迁移用户的所有旧版笔记"""
        logger.info(f"开始迁移用户 {user_id} 的旧版笔记")
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(LegacyNote)
                    .where(LegacyNote.user_id == user_id)
                    .order_by(LegacyNote.created_at)
                )
                rows = list(result.scalars().all())

                # 已迁移过的笔记保留当前所在文件夹
                folders = await session.execute(
                    select(NoteMetadata.id, NoteMetadata.folder_id)
                    .where(NoteMetadata.user_id == user_id)
                )
                current_folders = {r.id: r.folder_id for r in folders}
        except Exception as e:
            logger.opt(exception=e).error(f"读取旧版笔记失败: {e}")
            return MigrationResult(success=False, count=0, errors=[f"Failed to fetch notes: {e}"])

        if not rows:
            logger.info("没有需要迁移的笔记")
            return MigrationResult(success=True, count=0, errors=[])

        count = 0
        errors = []
        for row in rows:
            if row.user_id != user_id:
                errors.append(f"Note {row.id}: belongs to another user")
                continue
            try:
                note = self.to_note_data(row, current_folders.get(row.id))
                await self.note_service.save_note(user_id, note)
                count += 1
            except Exception as e:
                logger.error(f"迁移笔记失败 {row.id}: {e}")
                errors.append(f"Note {row.id}: {e}")

        logger.info(f"迁移完成: {count} 条成功, {len(errors)} 条失败")
        return MigrationResult(success=not errors, count=count, errors=errors)


# 全局迁移服务实例
migration_service = MigrationService()


def get_migration_service() -> MigrationService:
    """获取迁移服务实例"""
    return migration_service
