"""
AI服务管理器
统一管理STT和LLM服务，提供讲座笔记生成所需的高层接口
"""

from typing import Dict, Optional
import io

from app.core.exceptions import AIServiceException, ConfigurationException
from app.core.logging import ai_logger as logger
from app.utils.audio_utils import encode_base64_chunked
from .base import (
    AIServiceFactory, STTProvider, LLMProvider,
    TranscriptionResult, LLMResponse, AIConfig
)
from .openai_provider import register_openai_providers


AUDIO_NOTES_PROMPT = """You are an expert in creating lecture notes from audio recordings.
Transcribe the lecture and then write well-structured notes in markdown.

Respond with a single JSON object and nothing else:
{
  "transcription": "the full verbatim transcription",
  "notes": "markdown notes: an introductory summary paragraph, a '## Key Points' list using '-' bullets, then '## ' sections and '### ' subsections",
  "summary": "a concise summary of the main topics",
  "keyPoints": ["key point", "..."]
}

If the recording contains no intelligible speech, return an empty transcription."""

TEXT_NOTES_PROMPT = """You are an expert in creating lecture notes from audio transcriptions.
Create well-structured, comprehensive notes in markdown format from the lecture transcript below.

Follow these guidelines:
1. Start with a concise summary paragraph of the main topics covered
2. List the key points and main ideas as bullet points under a "Key Points" heading
3. Structure the rest with sections (## for sections, ### for subsections)
4. Include important definitions, concepts and examples
5. Use *italic* for technical terms and **bold** for important concepts"""


class AIService:
    """AI服务管理器"""

    def __init__(self, config: AIConfig):
        self.config = config

        # 注册所有提供商
        register_openai_providers()

        # 初始化服务提供商
        self.stt_provider: STTProvider = AIServiceFactory.create_stt_provider(
            config.stt_provider,
            config.stt_config
        )
        self.llm_provider: LLMProvider = AIServiceFactory.create_llm_provider(
            config.llm_provider,
            config.llm_config
        )

    # STT相关方法
    async def transcribe_audio(
        self,
        audio_file: io.BytesIO,
        language: str = "auto",
        **kwargs
    ) -> TranscriptionResult:
        """转录音频文件"""
        return await self.stt_provider.transcribe_audio(
            audio_file, language, **kwargs
        )

    # LLM相关方法
    async def chat_completion(
        self,
        messages,
        model: str = None,
        **kwargs
    ) -> LLMResponse:
        """聊天完成"""
        return await self.llm_provider.chat_completion(
            messages,
            model or self.config.default_llm_model,
            **kwargs
        )

    async def generate_from_audio(
        self,
        audio_data: bytes,
        audio_format: str,
        file_name: str = "audio"
    ) -> str:
        """
        从音频生成转录和笔记，返回模型的原始回复

        模型可直接接收该格式时一次性内联提交；
        否则先用Whisper转录，再将转录文本按同一指令提交给聊天模型。
        """
        if self.llm_provider.supports_audio_format(audio_format):
            logger.info(f"以内联音频提交 ({audio_format}, {len(audio_data)} bytes)")
            response = await self.llm_provider.complete_with_audio(
                prompt=AUDIO_NOTES_PROMPT,
                audio_base64=encode_base64_chunked(audio_data),
                audio_format=audio_format
            )
            return response.content

        logger.info(f"格式 {audio_format} 不支持内联提交，改用Whisper转录")
        audio_file = io.BytesIO(audio_data)
        audio_file.name = file_name if "." in file_name else f"{file_name}.{audio_format}"
        transcript = await self.transcribe_audio(audio_file)

        messages = [
            {"role": "system", "content": AUDIO_NOTES_PROMPT},
            {
                "role": "user",
                "content": (
                    "The recording has already been transcribed. Use this text verbatim "
                    f"as the transcription:\n\n{transcript.text}"
                )
            }
        ]
        response = await self.chat_completion(
            messages,
            temperature=0.2,
            response_format={"type": "json_object"}
        )
        return response.content

    async def summarize_text(self, text: str) -> str:
        """将转录文本整理为markdown笔记"""
        messages = [
            {"role": "system", "content": TEXT_NOTES_PROMPT},
            {"role": "user", "content": f"Here is the transcript:\n{text}"}
        ]
        response = await self.chat_completion(messages, temperature=0.2)
        if not response.content.strip():
            raise AIServiceException("Model returned empty notes")
        return response.content

    def get_provider_info(self) -> Dict[str, str]:
        """获取当前使用的提供商信息"""
        return {
            "stt_provider": self.stt_provider.provider.value,
            "llm_provider": self.llm_provider.provider.value
        }


# 全局AI服务实例
ai_service: Optional[AIService] = None


def init_ai_service(config: AIConfig):
    """初始化AI服务"""
    global ai_service
    if not config.llm_config.get("api_key"):
        raise ConfigurationException("OPENAI_API_KEY is not set")
    ai_service = AIService(config)
    logger.info(f"AI服务已初始化: {ai_service.get_provider_info()}")


def get_ai_service() -> AIService:
    """获取AI服务实例"""
    if ai_service is None:
        raise AIServiceException("AI service not initialized. Set OPENAI_API_KEY and restart.")
    return ai_service
