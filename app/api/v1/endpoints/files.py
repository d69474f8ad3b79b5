"""
本地存储文件访问端点 - 让本地后端生成的公开URL可以被访问
"""

import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.config import settings
from app.core.storage import StorageManager, get_storage_manager
from app.core.exceptions import ValidationException


router = APIRouter()


@router.api_route("/files/{bucket}/{file_path:path}", methods=["GET", "HEAD"], summary="读取存储文件")
async def read_file(
    bucket: str,
    file_path: str,
    request: Request,
    manager: StorageManager = Depends(get_storage_manager)
) -> Response:
    if manager.backend != "local" or bucket not in (settings.uploads_bucket, settings.notes_bucket):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    backend = manager.bucket(bucket)
    media_type = mimetypes.guess_type(file_path)[0] or "application/octet-stream"
    try:
        if request.method == "HEAD":
            if not await backend.exists(file_path):
                raise FileNotFoundError(file_path)
            return Response(status_code=status.HTTP_200_OK, media_type=media_type)
        content = await backend.download(file_path)
    except (FileNotFoundError, ValidationException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return Response(content=content, media_type=media_type)
