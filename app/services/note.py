"""
笔记持久化服务

笔记正文以JSON文档保存在notes桶的 <user_id>/<note_id>/note.json，
列表、归属和文件夹位置由note_metadata表维护。
"""

import json
import mimetypes
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select, delete, and_

from app.config import settings
from app.core.debounce import DebouncedTask
from app.core.exceptions import (
    FileProcessingException,
    PermissionDeniedException,
    ResourceNotFoundException
)
from app.core.logging import service_logger as logger
from app.core.storage import StorageManager, get_storage_manager
from app.db.base import utcnow
from app.db.session import AsyncSessionLocal
from app.models.folder import Folder
from app.models.note_metadata import NoteMetadata
from app.schemas.note import NoteData
from app.services.audio import TEMP_AUDIO_PREFIX
from app.utils.file_utils import get_file_extension

EMPTY_NOTE_SUMMARY = "No content yet"
NO_SUMMARY_PREVIEW = "No summary available"


def note_prefix(user_id: str, note_id: str) -> str:
    return f"{user_id}/{note_id}/"


def note_document_path(user_id: str, note_id: str) -> str:
    return f"{note_prefix(user_id, note_id)}note.json"


class NoteService:
    """笔记服务"""

    def __init__(
        self,
        session_factory=None,
        storage_manager: Optional[StorageManager] = None,
        preview_length: int = None
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self._storage_manager = storage_manager
        self.preview_length = preview_length or settings.preview_length

    @property
    def storage_manager(self) -> StorageManager:
        return self._storage_manager or get_storage_manager()

    @property
    def notes_bucket(self):
        return self.storage_manager.bucket(settings.notes_bucket)

    def make_preview(self, summary: Optional[str]) -> str:
        """摘要前N个字符，没有摘要时给出占位文字"""
        if not summary:
            return NO_SUMMARY_PREVIEW
        return summary[:self.preview_length]

    async def save_note(self, user_id: str, note: NoteData) -> str:
        """
        保存笔记文档并更新元数据

        Args:
            user_id: 用户ID
            note: 笔记数据，id为空时生成新ID

        Returns:
            str: 笔记ID
        """
        note_id = note.id or str(uuid.uuid4())
        now = utcnow()

        async with self.session_factory() as session:
            existing = await session.get(NoteMetadata, note_id)
            if existing is not None and existing.user_id != user_id:
                logger.warning(f"用户 {user_id} 试图覆盖他人的笔记 {note_id}")
                raise PermissionDeniedException("Note belongs to another user")
            if note.folder_id:
                await self._ensure_folder(session, user_id, note.folder_id)

        note = note.model_copy(update={
            "id": note_id,
            "created_at": note.created_at or (existing.created_at if existing else now),
            "updated_at": now
        })
        audio_path = await self._store_audio(user_id, note_id, note.audio_url)

        note_path = note_document_path(user_id, note_id)
        document = json.dumps(note.to_document(), ensure_ascii=False, indent=2)
        await self.notes_bucket.upload(
            note_path,
            document.encode("utf-8"),
            content_type="application/json",
            upsert=True
        )

        async with self.session_factory() as session:
            metadata = await session.get(NoteMetadata, note_id)
            if metadata is None:
                metadata = NoteMetadata(id=note_id, user_id=user_id, created_at=note.created_at)
                session.add(metadata)
            elif metadata.user_id != user_id:
                raise PermissionDeniedException("Note belongs to another user")

            metadata.title = note.title
            metadata.preview = self.make_preview(note.summary)
            metadata.note_path = note_path
            metadata.audio_path = audio_path
            metadata.folder_id = note.folder_id
            metadata.updated_at = now
            await session.commit()

        logger.info(f"笔记已保存: {note_id} (user {user_id})")
        return note_id

    async def _ensure_folder(self, session, user_id: str, folder_id: str):
        result = await session.execute(
            select(Folder.id).where(and_(Folder.id == folder_id, Folder.user_id == user_id))
        )
        if result.scalar_one_or_none() is None:
            raise ResourceNotFoundException("Folder")

    async def _store_audio(self, user_id: str, note_id: str, audio_url: Optional[str]) -> Optional[str]:
        """
        确定元数据中的音频引用

        上传桶中的临时音频复制到 <user_id>/<note_id>/audio<ext>，
        已在notes桶中的保留其路径，其他URL原样保存。
        """
        if not audio_url:
            return None

        located = self.storage_manager.locate(
            audio_url, [settings.notes_bucket, settings.uploads_bucket]
        )
        if located is None:
            return audio_url

        bucket_name, path = located
        # 只接受本用户自己的对象，其他路径按外部URL原样保存
        if bucket_name == settings.notes_bucket:
            return path if path.startswith(f"{user_id}/") else audio_url
        if not path.startswith(f"{TEMP_AUDIO_PREFIX}/{user_id}/"):
            logger.warning(f"用户 {user_id} 引用了不属于自己的临时音频 {path}")
            return audio_url

        target = f"{note_prefix(user_id, note_id)}audio{get_file_extension(path)}"
        try:
            content = await self.storage_manager.bucket(bucket_name).download(path)
            content_type, _ = mimetypes.guess_type(path)
            await self.notes_bucket.upload(target, content, content_type=content_type, upsert=True)
        except Exception as e:
            # 复制失败不影响保存，保留原始URL
            logger.error(f"复制音频到永久存储失败 {audio_url}: {e}")
            return audio_url

        logger.info(f"音频已复制到永久存储: {target}")
        return target

    async def _get_metadata(self, session, user_id: str, note_id: str) -> Optional[NoteMetadata]:
        result = await session.execute(
            select(NoteMetadata).where(
                and_(NoteMetadata.id == note_id, NoteMetadata.user_id == user_id)
            )
        )
        return result.scalar_one_or_none()

    def resolve_audio_url(self, audio_path: Optional[str]) -> Optional[str]:
        """元数据中的音频引用转为可访问URL"""
        if not audio_path:
            return None
        if audio_path.startswith("http"):
            return audio_path
        return self.notes_bucket.get_public_url(audio_path)

    async def get_note(self, user_id: str, note_id: str) -> NoteData:
        """读取完整笔记"""
        try:
            raw = await self.notes_bucket.download(note_document_path(user_id, note_id))
        except FileNotFoundError:
            raise ResourceNotFoundException("Note")

        try:
            note = NoteData.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.error(f"笔记文档无法解析 {note_id}: {e}")
            raise FileProcessingException("Note document is corrupted")

        async with self.session_factory() as session:
            metadata = await self._get_metadata(session, user_id, note_id)

        updates: Dict[str, Any] = {"id": note_id}
        if metadata is not None:
            updates["audio_url"] = self.resolve_audio_url(metadata.audio_path)
            updates["folder_id"] = metadata.folder_id
        return note.model_copy(update=updates)

    async def list_notes(self, user_id: str) -> List[NoteMetadata]:
        """用户的笔记元数据，最新的在前"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(NoteMetadata)
                .where(NoteMetadata.user_id == user_id)
                .order_by(NoteMetadata.created_at.desc())
            )
            return list(result.scalars().all())

    async def delete_note(self, user_id: str, note_id: str) -> bool:
        """删除笔记目录下的所有对象和元数据"""
        async with self.session_factory() as session:
            metadata = await self._get_metadata(session, user_id, note_id)
            if metadata is None:
                raise ResourceNotFoundException("Note")

        try:
            paths = await self.notes_bucket.list(note_prefix(user_id, note_id))
        except Exception as e:
            logger.error(f"列举笔记文件失败 {note_id}: {e}")
            paths = []

        for path in paths:
            try:
                await self.notes_bucket.delete(path)
            except Exception as e:
                logger.error(f"删除笔记文件失败 {path}: {e}")

        async with self.session_factory() as session:
            await session.execute(
                delete(NoteMetadata).where(
                    and_(NoteMetadata.id == note_id, NoteMetadata.user_id == user_id)
                )
            )
            await session.commit()

        logger.info(f"笔记已删除: {note_id} ({len(paths)} files)")
        return True

    async def update_note_title(self, user_id: str, note_id: str, title: str) -> NoteData:
        """更新标题"""
        note = await self.get_note(user_id, note_id)
        note.title = title
        await self.save_note(user_id, note)
        return note

    async def update_note_content(self, user_id: str, note_id: str, changes: Dict[str, Any]) -> NoteData:
        """读取-修改-写回整个笔记文档"""
        note = await self.get_note(user_id, note_id)
        merged = {**note.model_dump(), **changes, "id": note_id}
        updated = NoteData.model_validate(merged)
        await self.save_note(user_id, updated)
        return updated

    async def create_empty_note(
        self,
        user_id: str,
        title: str = "Untitled Note",
        folder_id: Optional[str] = None
    ) -> str:
        """创建空白笔记"""
        note = NoteData(
            title=title,
            transcription="",
            summary=EMPTY_NOTE_SUMMARY,
            folder_id=folder_id
        )
        return await self.save_note(user_id, note)

    async def discard_ai_notes(self, user_id: str, note_id: str) -> NoteData:
        """清除AI生成的笔记内容，保留转录"""
        return await self.update_note_content(user_id, note_id, {
            "summary": "",
            "raw_summary": None,
            "structured_summary": None
        })


class NoteAutosaver:
    """笔记内容的防抖自动保存，同一笔记的连续修改合并为一次写入"""

    def __init__(self, note_service: NoteService, delay: float = None):
        self.note_service = note_service
        self.debouncer = DebouncedTask(settings.autosave_delay if delay is None else delay)
        self._changes: Dict[tuple, Dict[str, Any]] = {}

    def schedule(self, user_id: str, note_id: str, changes: Dict[str, Any]):
        key = (user_id, note_id)
        self._changes.setdefault(key, {}).update(changes)
        self.debouncer.schedule(key, self._save, user_id, note_id)

    async def _save(self, user_id: str, note_id: str):
        changes = self._changes.pop((user_id, note_id), {})
        if changes:
            await self.note_service.update_note_content(user_id, note_id, changes)

    def pending(self, user_id: str, note_id: str) -> bool:
        return self.debouncer.pending((user_id, note_id))

    def cancel(self, user_id: str, note_id: str) -> bool:
        self._changes.pop((user_id, note_id), None)
        return self.debouncer.cancel((user_id, note_id))

    async def flush(self, user_id: str, note_id: str) -> bool:
        return await self.debouncer.flush((user_id, note_id))

    async def flush_all(self):
        await self.debouncer.flush_all()


# 全局笔记服务实例
note_service = NoteService()
note_autosaver = NoteAutosaver(note_service)


def get_note_service() -> NoteService:
    """获取笔记服务实例"""
    return note_service


def get_note_autosaver() -> NoteAutosaver:
    """获取自动保存器实例"""
    return note_autosaver
