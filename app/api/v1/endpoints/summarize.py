"""
摘要网关API端点
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.auth import get_current_user_id
from app.core.exceptions import LectureScribeException, status_code_for
from app.core.logging import api_logger
from app.schemas.gateway import SummarizeRequest
from app.services.summarization import get_summarization_gateway, SummarizationGateway


router = APIRouter()


@router.post("/summarize-audio", summary="转录并生成笔记")
async def summarize_audio(
    request: SummarizeRequest,
    user_id: str = Depends(get_current_user_id),
    gateway: SummarizationGateway = Depends(get_summarization_gateway)
):
    """
    音频模式传 audioUrl，文本模式传 audioText

    成功返回 {transcription, summary, rawSummary, structuredSummary}，失败返回 {error}
    """
    try:
        result = await gateway.process(
            audio_url=request.audio_url,
            audio_text=request.audio_text,
            content_type=request.content_type,
            file_name=request.file_name
        )
    except LectureScribeException as e:
        api_logger.error(f"summarize-audio失败 (user {user_id}): {e.message}")
        return JSONResponse(status_code=status_code_for(e), content={"error": e.message})

    return result.model_dump(mode="json", by_alias=True)
