"""
文件夹相关API端点
"""

from fastapi import APIRouter, Depends, Path, status
from typing import Dict, Any

from app.core.auth import get_current_user_id
from app.services.folder import get_folder_service, FolderService
from app.schemas.folder import FolderCreate, FolderRename, FolderMove, FolderResponse


router = APIRouter()


@router.get("/", summary="获取文件夹列表")
async def list_folders(
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    folders = await service.get_folders(user_id)
    return {
        "success": True,
        "data": [FolderResponse.model_validate(f).model_dump(mode="json") for f in folders]
    }


@router.get("/tree", summary="获取文件夹树")
async def get_folder_tree(
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    """文件夹和笔记组成的树，未归档的笔记位于根目录"""
    tree = await service.build_folder_tree(user_id)
    return {
        "success": True,
        "data": [node.model_dump(mode="json") for node in tree]
    }


@router.post("/", summary="创建文件夹", status_code=status.HTTP_201_CREATED)
async def create_folder(
    request: FolderCreate,
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    """
    创建文件夹

    - **name**: 文件夹名称
    - **parentId**: 父文件夹（可选）
    """
    folder_id = await service.create_folder(user_id, request.name, request.parent_id)
    return {
        "success": True,
        "message": "文件夹创建成功",
        "data": {"id": folder_id}
    }


@router.patch("/{folder_id}", summary="重命名文件夹")
async def rename_folder(
    request: FolderRename,
    folder_id: str = Path(..., description="文件夹ID"),
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    await service.update_folder(user_id, folder_id, request.name)
    return {
        "success": True,
        "message": "文件夹已重命名"
    }


@router.put("/{folder_id}/parent", summary="移动文件夹")
async def move_folder(
    request: FolderMove,
    folder_id: str = Path(..., description="文件夹ID"),
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    """移动文件夹，不能移到自身或其子文件夹下"""
    await service.move_folder(user_id, folder_id, request.parent_id)
    return {
        "success": True,
        "message": "文件夹已移动"
    }


@router.delete("/{folder_id}", summary="删除文件夹")
async def delete_folder(
    folder_id: str = Path(..., description="文件夹ID"),
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    """删除文件夹及子文件夹，其中的笔记移到根目录"""
    removed = await service.delete_folder(user_id, folder_id)
    return {
        "success": True,
        "message": "文件夹删除成功",
        "data": {"deleted": removed}
    }
