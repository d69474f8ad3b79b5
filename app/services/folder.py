"""
文件夹服务

文件夹通过parent_id组成一棵(或多棵)树，移动时检查祖先链以保证无环。
"""

import uuid
from collections import deque
from typing import Dict, List, Optional, Set, Union

from sqlalchemy import select, update, delete, and_

from app.core.exceptions import FolderCycleException, ResourceNotFoundException
from app.core.logging import service_logger as logger
from app.db.base import utcnow
from app.db.session import AsyncSessionLocal
from app.models.folder import Folder
from app.models.note_metadata import NoteMetadata
from app.schemas.folder import FolderNode, NoteItem


def would_create_cycle(parents: Dict[str, Optional[str]], folder_id: str, new_parent_id: Optional[str]) -> bool:
    """
    沿new_parent_id的祖先链向上查找folder_id

    parents 为 {文件夹ID: 父ID} 的映射。遇到folder_id本身或已访问过的节点都视为成环。
    """
    visited: Set[str] = set()
    current = new_parent_id
    while current is not None:
        if current == folder_id or current in visited:
            return True
        visited.add(current)
        current = parents.get(current)
    return False


def collect_descendants(parents: Dict[str, Optional[str]], folder_id: str) -> List[str]:
    """收集所有后代文件夹ID(不含自身)"""
    children: Dict[str, List[str]] = {}
    for child_id, parent_id in parents.items():
        if parent_id is not None:
            children.setdefault(parent_id, []).append(child_id)

    descendants: List[str] = []
    visited: Set[str] = {folder_id}
    worklist = list(children.get(folder_id, []))
    while worklist:
        current = worklist.pop()
        if current in visited:
            continue
        visited.add(current)
        descendants.append(current)
        worklist.extend(children.get(current, []))
    return descendants


class FolderService:
    """文件夹服务"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def _parent_map(self, session, user_id: str) -> Dict[str, Optional[str]]:
        result = await session.execute(
            select(Folder.id, Folder.parent_id).where(Folder.user_id == user_id)
        )
        return {row.id: row.parent_id for row in result}

    async def _get_folder(self, session, user_id: str, folder_id: str) -> Folder:
        result = await session.execute(
            select(Folder).where(and_(Folder.id == folder_id, Folder.user_id == user_id))
        )
        folder = result.scalar_one_or_none()
        if folder is None:
            raise ResourceNotFoundException("Folder")
        return folder

    async def create_folder(self, user_id: str, name: str, parent_id: Optional[str] = None) -> str:
        """创建文件夹，返回文件夹ID"""
        folder_id = str(uuid.uuid4())
        async with self.session_factory() as session:
            if parent_id is not None:
                await self._get_folder(session, user_id, parent_id)

            now = utcnow()
            session.add(Folder(
                id=folder_id,
                user_id=user_id,
                name=name,
                parent_id=parent_id,
                created_at=now,
                updated_at=now
            ))
            await session.commit()

        logger.info(f"文件夹已创建: {name} ({folder_id})")
        return folder_id

    async def update_folder(self, user_id: str, folder_id: str, name: str):
        """重命名文件夹"""
        async with self.session_factory() as session:
            folder = await self._get_folder(session, user_id, folder_id)
            folder.name = name
            folder.updated_at = utcnow()
            await session.commit()

    async def move_folder(self, user_id: str, folder_id: str, new_parent_id: Optional[str]):
        """
        移动文件夹到新的父文件夹下

        Raises:
            FolderCycleException: 目标是自身或自身的后代
            ResourceNotFoundException: 文件夹或目标不存在
        """
        async with self.session_factory() as session:
            folder = await self._get_folder(session, user_id, folder_id)

            if new_parent_id is not None:
                parents = await self._parent_map(session, user_id)
                if new_parent_id not in parents:
                    raise ResourceNotFoundException("Folder")
                if would_create_cycle(parents, folder_id, new_parent_id):
                    logger.warning(f"拒绝移动文件夹 {folder_id} 到 {new_parent_id}: 会形成环")
                    raise FolderCycleException()

            folder.parent_id = new_parent_id
            folder.updated_at = utcnow()
            await session.commit()

    async def move_note(self, user_id: str, note_id: str, new_folder_id: Optional[str]):
        """移动笔记到文件夹(None表示根目录)"""
        async with self.session_factory() as session:
            if new_folder_id is not None:
                await self._get_folder(session, user_id, new_folder_id)

            result = await session.execute(
                update(NoteMetadata)
                .where(and_(NoteMetadata.id == note_id, NoteMetadata.user_id == user_id))
                .values(folder_id=new_folder_id, updated_at=utcnow())
            )
            if result.rowcount == 0:
                raise ResourceNotFoundException("Note")
            await session.commit()

    async def delete_folder(self, user_id: str, folder_id: str) -> List[str]:
        """
        删除文件夹及其所有子文件夹

        其中的笔记移到根目录，不会被删除。返回被删除的文件夹ID列表。
        """
        async with self.session_factory() as session:
            await self._get_folder(session, user_id, folder_id)
            parents = await self._parent_map(session, user_id)
            descendants = collect_descendants(parents, folder_id)
            removed = [folder_id] + descendants

            await session.execute(
                update(NoteMetadata)
                .where(and_(NoteMetadata.user_id == user_id, NoteMetadata.folder_id.in_(removed)))
                .values(folder_id=None)
            )
            if descendants:
                await session.execute(
                    delete(Folder).where(and_(Folder.user_id == user_id, Folder.id.in_(descendants)))
                )
            await session.execute(
                delete(Folder).where(and_(Folder.user_id == user_id, Folder.id == folder_id))
            )
            await session.commit()

        logger.info(f"文件夹已删除: {folder_id} 及 {len(descendants)} 个子文件夹")
        return removed

    async def get_folders(self, user_id: str) -> List[Folder]:
        """用户的所有文件夹，按名称排序"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Folder).where(Folder.user_id == user_id).order_by(Folder.name)
            )
            return list(result.scalars().all())

    async def build_folder_tree(self, user_id: str) -> List[Union[FolderNode, NoteItem]]:
        """
        构建文件夹树

        笔记挂在所属文件夹下，folder_id为空或指向不存在的文件夹时放在根目录。
        父文件夹不存在的文件夹、以及处于已有环中的文件夹都提升到根目录。
        """
        folders = await self.get_folders(user_id)
        async with self.session_factory() as session:
            result = await session.execute(
                select(NoteMetadata)
                .where(NoteMetadata.user_id == user_id)
                .order_by(NoteMetadata.created_at.desc())
            )
            notes = list(result.scalars().all())

        nodes: Dict[str, FolderNode] = {
            f.id: FolderNode(id=f.id, name=f.name, parent_id=f.parent_id) for f in folders
        }
        children: Dict[Optional[str], List[str]] = {}
        for folder in folders:
            parent_id = folder.parent_id if folder.parent_id in nodes else None
            children.setdefault(parent_id, []).append(folder.id)

        roots: List[Union[FolderNode, NoteItem]] = []
        placed: Set[str] = set()

        def attach_subtree(root_id: str):
            placed.add(root_id)
            queue = deque([root_id])
            while queue:
                current = queue.popleft()
                for child_id in children.get(current, []):
                    if child_id in placed:
                        continue
                    placed.add(child_id)
                    nodes[current].children.append(nodes[child_id])
                    queue.append(child_id)

        for root_id in children.get(None, []):
            roots.append(nodes[root_id])
            attach_subtree(root_id)

        # 剩下的文件夹都处于环中，各环从第一个未放置的节点断开
        for folder in folders:
            if folder.id not in placed:
                roots.append(nodes[folder.id])
                attach_subtree(folder.id)

        for note in notes:
            item = NoteItem(
                id=note.id,
                title=note.title,
                preview=note.preview,
                folder_id=note.folder_id,
                created_at=note.created_at
            )
            if note.folder_id in nodes:
                nodes[note.folder_id].children.append(item)
            else:
                roots.append(item)

        return roots


# 全局文件夹服务实例
folder_service = FolderService()


def get_folder_service() -> FolderService:
    """获取文件夹服务实例"""
    return folder_service
