"""
音频相关API端点
"""

from fastapi import APIRouter, Depends, UploadFile, File, Form
from typing import Dict, Any, Optional

from app.core.auth import get_current_user_id
from app.services.audio import get_audio_transport_service, AudioTransportService
from app.services.pipeline import get_audio_pipeline, AudioPipeline
from app.services.summarization import get_summarization_gateway, SummarizationGateway


router = APIRouter()


@router.post("/upload", summary="上传音频")
async def upload_audio(
    audio: UploadFile = File(..., description="音频文件"),
    user_id: str = Depends(get_current_user_id),
    service: AudioTransportService = Depends(get_audio_transport_service)
) -> Dict[str, Any]:
    """上传音频到临时存储，返回公开URL"""
    content = await audio.read()
    uploaded = await service.upload(content, audio.filename, audio.content_type, user_id)
    return {
        "success": True,
        "message": "音频上传成功",
        "data": uploaded.model_dump()
    }


@router.post("/process", summary="处理音频并生成笔记")
async def process_audio(
    audio: UploadFile = File(..., description="音频文件"),
    title: Optional[str] = Form(None, description="笔记标题"),
    folder_id: Optional[str] = Form(None, alias="folderId", description="目标文件夹"),
    user_id: str = Depends(get_current_user_id),
    pipeline: AudioPipeline = Depends(get_audio_pipeline)
) -> Dict[str, Any]:
    """
    上传、转录、生成笔记并保存

    - **audio**: 录音或音频文件
    - **title**: 笔记标题（可选）
    - **folderId**: 目标文件夹（可选）
    """
    content = await audio.read()
    processed = await pipeline.process(
        user_id=user_id,
        content=content,
        filename=audio.filename,
        content_type=audio.content_type,
        title=title,
        folder_id=folder_id
    )
    return {
        "success": True,
        "message": "音频处理完成",
        "data": processed.model_dump(mode="json", by_alias=True)
    }


@router.post("/transcribe", summary="仅转录音频")
async def transcribe_audio(
    audio: UploadFile = File(..., description="音频文件"),
    user_id: str = Depends(get_current_user_id),
    gateway: SummarizationGateway = Depends(get_summarization_gateway)
) -> Dict[str, Any]:
    """使用Whisper转录音频，不保存笔记"""
    content = await audio.read()
    transcription = await gateway.transcribe(content, audio.filename)
    return {"transcription": transcription}
