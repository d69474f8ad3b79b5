"""
笔记相关API端点
"""

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse
from typing import Dict, Any

from app.core.auth import get_current_user_id
from app.services.note import get_note_service, get_note_autosaver, NoteService, NoteAutosaver
from app.services.folder import get_folder_service, FolderService
from app.services.pipeline import get_audio_pipeline, AudioPipeline
from app.schemas.note import (
    NoteData,
    NoteCreate,
    NoteTitleUpdate,
    NoteContentUpdate,
    NoteFolderUpdate,
    NoteMetadataResponse
)


router = APIRouter()


def note_payload(note: NoteData) -> Dict[str, Any]:
    return note.model_dump(mode="json", by_alias=True)


@router.get("/", summary="获取笔记列表")
async def list_notes(
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    """获取当前用户的笔记元数据，最新的在前"""
    notes = await service.list_notes(user_id)
    return {
        "success": True,
        "data": [NoteMetadataResponse.model_validate(n).model_dump(mode="json") for n in notes]
    }


@router.post("/", summary="创建空白笔记", status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreate,
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    """
    创建空白笔记

    - **title**: 笔记标题
    - **folderId**: 所在文件夹（可选）
    """
    note_id = await service.create_empty_note(user_id, request.title, request.folder_id)
    return {
        "success": True,
        "message": "笔记创建成功",
        "data": {"id": note_id}
    }


@router.put("/save", summary="保存完整笔记")
async def save_note(
    note: NoteData,
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    """保存完整笔记文档，id为空时创建新笔记"""
    note_id = await service.save_note(user_id, note)
    return {
        "success": True,
        "message": "笔记保存成功",
        "data": {"id": note_id}
    }


@router.get("/{note_id}", summary="获取笔记详情")
async def get_note(
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    """获取完整笔记，包括转录、摘要和音频URL"""
    note = await service.get_note(user_id, note_id)
    return {
        "success": True,
        "data": note_payload(note)
    }


@router.delete("/{note_id}", summary="删除笔记")
async def delete_note(
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
    autosaver: NoteAutosaver = Depends(get_note_autosaver)
) -> Dict[str, Any]:
    """删除笔记文档、音频和元数据"""
    autosaver.cancel(user_id, note_id)
    await service.delete_note(user_id, note_id)
    return {
        "success": True,
        "message": "笔记删除成功"
    }


@router.patch("/{note_id}/title", summary="更新笔记标题")
async def update_note_title(
    request: NoteTitleUpdate,
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    note = await service.update_note_title(user_id, note_id, request.title)
    return {
        "success": True,
        "message": "标题更新成功",
        "data": note_payload(note)
    }


@router.put("/{note_id}/content", summary="更新笔记内容")
async def update_note_content(
    request: NoteContentUpdate,
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service),
    autosaver: NoteAutosaver = Depends(get_note_autosaver)
):
    """
    更新笔记内容

    - **autosave**: 为true时以防抖方式延迟写入，立即返回202
    """
    changes = request.changes()
    if request.autosave:
        autosaver.schedule(user_id, note_id, changes)
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"success": True, "message": "已加入自动保存"}
        )

    autosaver.cancel(user_id, note_id)
    note = await service.update_note_content(user_id, note_id, changes)
    return {
        "success": True,
        "message": "笔记保存成功",
        "data": note_payload(note)
    }


@router.post("/{note_id}/regenerate", summary="重新生成AI笔记")
async def regenerate_ai_notes(
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    pipeline: AudioPipeline = Depends(get_audio_pipeline)
) -> Dict[str, Any]:
    """根据已保存的转录重新生成摘要和结构化笔记"""
    result = await pipeline.regenerate_ai_notes(user_id, note_id)
    return {
        "success": True,
        "message": "AI笔记已重新生成",
        "data": result.model_dump(mode="json", by_alias=True)
    }


@router.post("/{note_id}/discard-ai", summary="清除AI笔记")
async def discard_ai_notes(
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: NoteService = Depends(get_note_service)
) -> Dict[str, Any]:
    note = await service.discard_ai_notes(user_id, note_id)
    return {
        "success": True,
        "message": "AI笔记已清除",
        "data": note_payload(note)
    }


@router.put("/{note_id}/folder", summary="移动笔记")
async def move_note(
    request: NoteFolderUpdate,
    note_id: str = Path(..., description="笔记ID"),
    user_id: str = Depends(get_current_user_id),
    service: FolderService = Depends(get_folder_service)
) -> Dict[str, Any]:
    """移动笔记到文件夹，folderId为空表示移到根目录"""
    await service.move_note(user_id, note_id, request.folder_id)
    return {
        "success": True,
        "message": "笔记已移动"
    }
