"""
音频处理流水线

上传 -> 可访问性检查 -> 网关转录 -> 保存笔记 -> 清理临时上传，严格按顺序执行。
任一步失败都会清理临时上传，且不会创建笔记。
"""

from datetime import datetime
from typing import Optional

from app.core.exceptions import StorageException
from app.core.logging import service_logger as logger
from app.schemas.gateway import GatewayResult, ProcessedAudio
from app.schemas.note import NoteData
from app.services.audio import AudioTransportService, get_audio_transport_service
from app.services.note import NoteService, get_note_service
from app.services.summarization import SummarizationGateway, get_summarization_gateway


def default_title(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Lecture Notes - {now.strftime('%Y-%m-%d %H:%M')}"


class AudioPipeline:
    """录音/上传到笔记的完整处理流程"""

    def __init__(
        self,
        transport: Optional[AudioTransportService] = None,
        gateway: Optional[SummarizationGateway] = None,
        note_service: Optional[NoteService] = None
    ):
        self._transport = transport
        self._gateway = gateway
        self._note_service = note_service

    @property
    def transport(self) -> AudioTransportService:
        return self._transport or get_audio_transport_service()

    @property
    def gateway(self) -> SummarizationGateway:
        return self._gateway or get_summarization_gateway()

    @property
    def note_service(self) -> NoteService:
        return self._note_service or get_note_service()

    async def process(
        self,
        user_id: str,
        content: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        title: Optional[str] = None,
        folder_id: Optional[str] = None
    ) -> ProcessedAudio:
        """
        处理一段音频并保存为笔记

        Args:
            user_id: 用户ID
            content: 音频数据
            filename: 原始文件名
            content_type: 声明的MIME类型
            title: 笔记标题，默认按时间生成
            folder_id: 目标文件夹

        Returns:
            ProcessedAudio: 新笔记ID、标题和网关结果
        """
        uploaded = await self.transport.upload(content, filename, content_type, user_id)
        try:
            if not await self.transport.verify_accessible(uploaded.url):
                raise StorageException("Uploaded audio is not accessible")

            result = await self.gateway.process(
                audio_url=uploaded.url,
                content_type=uploaded.content_type,
                file_name=filename
            )

            note = NoteData(
                title=title or default_title(),
                transcription=result.transcription,
                summary=result.summary,
                raw_summary=result.raw_summary,
                structured_summary=result.structured_summary,
                audio_url=uploaded.url,
                folder_id=folder_id
            )
            note_id = await self.note_service.save_note(user_id, note)
        except Exception as e:
            logger.error(f"音频处理失败 ({uploaded.path}): {e}")
            raise
        finally:
            # 音频已复制到永久存储或处理失败，临时文件都不再需要
            await self.transport.remove(uploaded.path)

        logger.info(f"音频处理完成，已创建笔记 {note_id}")
        return ProcessedAudio(note_id=note_id, title=note.title, result=result)

    async def regenerate_ai_notes(self, user_id: str, note_id: str) -> GatewayResult:
        """根据已保存的转录重新生成AI笔记"""
        note = await self.note_service.get_note(user_id, note_id)
        result = await self.gateway.summarize_text(note.transcription)
        await self.note_service.update_note_content(user_id, note_id, {
            "summary": result.summary,
            "raw_summary": result.raw_summary,
            "structured_summary": result.structured_summary
        })
        logger.info(f"已重新生成笔记 {note_id} 的AI内容")
        return result


# 全局流水线实例
audio_pipeline = AudioPipeline()


def get_audio_pipeline() -> AudioPipeline:
    """获取流水线实例"""
    return audio_pipeline
