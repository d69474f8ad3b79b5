"""
转录/摘要网关

音频模式: 下载音频 -> 模型转录并生成笔记 -> 解析回复
文本模式: 已有转录 -> 模型生成markdown笔记
"""

import io
from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import (
    AIServiceException,
    FileProcessingException,
    LectureScribeException,
    ValidationException
)
from app.core.logging import ai_logger as logger
from app.schemas.gateway import GatewayResult
from app.services.ai import get_ai_service
from app.services.parsing import parse_model_reply, parse_structured_summary
from app.utils.audio_utils import audio_format_for


class SummarizationGateway:
    """转录与笔记生成网关"""

    def __init__(
        self,
        ai_service=None,
        http_client: Optional[httpx.AsyncClient] = None,
        min_transcription_length: int = None
    ):
        self._ai_service = ai_service
        self.http_client = http_client
        self.min_transcription_length = (
            settings.min_transcription_length
            if min_transcription_length is None
            else min_transcription_length
        )

    @property
    def ai_service(self):
        return self._ai_service or get_ai_service()

    async def process(
        self,
        audio_url: Optional[str] = None,
        audio_text: Optional[str] = None,
        content_type: Optional[str] = None,
        file_name: Optional[str] = None
    ) -> GatewayResult:
        """按请求内容选择音频模式或文本模式"""
        if audio_url:
            return await self.process_audio(audio_url, content_type, file_name)
        if audio_text is not None:
            return await self.summarize_text(audio_text)
        raise ValidationException("Either audioUrl or audioText is required")

    async def process_audio(
        self,
        audio_url: str,
        content_type: Optional[str] = None,
        file_name: Optional[str] = None
    ) -> GatewayResult:
        """下载音频并生成转录与笔记"""
        audio_data = await self._download(audio_url)
        if not audio_data:
            raise FileProcessingException("Audio file is empty")

        audio_format = audio_format_for(content_type, file_name or audio_url)
        logger.info(f"开始处理音频 {audio_url} ({audio_format}, {len(audio_data)} bytes)")

        try:
            reply = await self.ai_service.generate_from_audio(
                audio_data,
                audio_format,
                file_name=file_name or f"audio.{audio_format}"
            )
        except LectureScribeException:
            raise
        except Exception as e:
            logger.opt(exception=e).error(f"音频转录失败: {e}")
            raise AIServiceException(f"Failed to transcribe audio: {e}")

        parsed = parse_model_reply(reply, self.min_transcription_length)
        notes = parsed.notes or parsed.summary
        structured = parse_structured_summary(notes)
        if not structured.summary and parsed.summary:
            structured.summary = parsed.summary
        if not structured.key_points and parsed.key_points:
            structured.key_points = parsed.key_points

        logger.info(
            f"音频处理完成: 转录 {len(parsed.transcription)} chars, "
            f"{len(structured.sections)} sections (via {parsed.strategy})"
        )
        return GatewayResult(
            transcription=parsed.transcription,
            summary=notes,
            raw_summary=reply,
            structured_summary=structured
        )

    async def summarize_text(self, audio_text: str) -> GatewayResult:
        """仅对已有转录文本生成笔记"""
        if not audio_text or not audio_text.strip():
            raise ValidationException("Audio text is required")

        try:
            notes = await self.ai_service.summarize_text(audio_text)
        except LectureScribeException:
            raise
        except Exception as e:
            logger.opt(exception=e).error(f"文本摘要失败: {e}")
            raise AIServiceException(f"Failed to summarize transcript: {e}")

        return GatewayResult(
            transcription=audio_text,
            summary=notes,
            raw_summary=notes,
            structured_summary=parse_structured_summary(notes)
        )

    async def transcribe(self, audio_data: bytes, file_name: Optional[str] = None) -> str:
        """仅做语音转录(Whisper)，不生成笔记"""
        if not audio_data:
            raise FileProcessingException("Audio file is empty")

        audio_file = io.BytesIO(audio_data)
        audio_file.name = file_name or "audio.wav"
        try:
            result = await self.ai_service.transcribe_audio(audio_file)
        except LectureScribeException:
            raise
        except Exception as e:
            logger.opt(exception=e).error(f"语音转录失败: {e}")
            raise AIServiceException(f"Failed to transcribe audio: {e}")
        return result.text

    async def _download(self, audio_url: str) -> bytes:
        try:
            if self.http_client is not None:
                response = await self.http_client.get(audio_url)
            else:
                async with httpx.AsyncClient(timeout=settings.ai_timeout) as client:
                    response = await client.get(audio_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"下载音频失败 {audio_url}: {e}")
            raise FileProcessingException(f"Failed to download audio: {e}")
        return response.content


# 全局网关实例
summarization_gateway = SummarizationGateway()


def get_summarization_gateway() -> SummarizationGateway:
    """获取网关实例"""
    return summarization_gateway
