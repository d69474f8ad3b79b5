"""
OpenAI API集成实现
包含Whisper STT和GPT LLM服务
"""

import io
import httpx
from typing import Dict, Any, List, Optional
from openai import AsyncOpenAI
import openai

from app.core.exceptions import AIServiceException
from app.core.logging import ai_logger as logger
from .base import (
    STTProvider, LLMProvider, AIProvider,
    TranscriptionResult, LLMResponse
)

# gpt-4o音频模型可直接接收的内联格式
INLINE_AUDIO_FORMATS = ("wav", "mp3")


def build_http_client(config: Dict[str, Any]) -> Optional[httpx.AsyncClient]:
    """根据代理配置构建httpx客户端，未配置代理时返回None"""
    proxy_url = config.get("https_proxy") or config.get("http_proxy")
    if not proxy_url:
        return None

    proxy = proxy_url
    if config.get("proxy_auth"):
        username, password = config["proxy_auth"].split(":", 1)
        proxy = httpx.Proxy(proxy_url, auth=(username, password))

    return httpx.AsyncClient(proxy=proxy, timeout=config.get("timeout", 60))


def build_client(config: Dict[str, Any]) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),  # 支持自定义endpoint
        timeout=config.get("timeout", 60),
        http_client=build_http_client(config)
    )


class OpenAISTTProvider(STTProvider):
    """OpenAI Whisper语音转录服务"""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.client = build_client(config)
        self.default_model = config.get("model", "whisper-1")

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.OPENAI

    async def transcribe_audio(
        self,
        audio_file: io.BytesIO,
        language: str = "auto",
        **kwargs
    ) -> TranscriptionResult:
        """使用Whisper API转录音频"""
        transcription_params = {
            "model": kwargs.get("model", self.default_model),
            "response_format": "verbose_json",  # 获取分段信息
        }
        if language != "auto":
            transcription_params["language"] = language
        if "prompt" in kwargs:
            transcription_params["prompt"] = kwargs["prompt"]

        try:
            response = await self.client.audio.transcriptions.create(
                file=audio_file,
                **transcription_params
            )
        except openai.OpenAIError as e:
            logger.error(f"Whisper转录失败: {e}")
            raise AIServiceException(f"OpenAI STT error: {e}")

        segments = [
            {"start": seg.start, "end": seg.end, "text": seg.text}
            for seg in (getattr(response, "segments", None) or [])
        ]

        return TranscriptionResult(
            text=response.text or "",
            language=getattr(response, "language", None) or language,
            segments=segments
        )


class OpenAILLMProvider(LLMProvider):
    """OpenAI GPT大语言模型服务"""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.client = build_client(config)
        self.default_model = config.get("model", "gpt-4o-mini")
        self.audio_model = config.get("audio_model", "gpt-4o-audio-preview")

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.OPENAI

    def supports_audio_format(self, audio_format: str) -> bool:
        return audio_format in INLINE_AUDIO_FORMATS

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        model: str = None,
        temperature: float = 0.7,
        max_tokens: int = None,
        **kwargs
    ) -> LLMResponse:
        """GPT聊天完成"""
        params = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            **kwargs
        }
        if max_tokens:
            params["max_tokens"] = max_tokens

        try:
            response = await self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI聊天完成失败: {e}")
            raise AIServiceException(f"OpenAI LLM error: {e}")

        if not response.choices:
            raise AIServiceException("OpenAI LLM error: empty response")

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            }

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=response.choices[0].finish_reason,
            metadata={"id": response.id}
        )

    async def complete_with_audio(
        self,
        prompt: str,
        audio_base64: str,
        audio_format: str,
        model: str = None,
        **kwargs
    ) -> LLMResponse:
        """以input_audio内联提交音频"""
        if not self.supports_audio_format(audio_format):
            raise AIServiceException(f"Inline audio format not supported: {audio_format}")

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "input_audio",
                        "input_audio": {"data": audio_base64, "format": audio_format}
                    }
                ]
            }
        ]
        return await self.chat_completion(
            messages=messages,
            model=model or self.audio_model,
            temperature=kwargs.pop("temperature", 0.2),
            modalities=["text"],
            **kwargs
        )


# 注册OpenAI提供商到工厂
def register_openai_providers():
    """注册OpenAI服务提供商"""
    from .base import AIServiceFactory

    AIServiceFactory.register_stt_provider(
        AIProvider.OPENAI,
        OpenAISTTProvider
    )
    AIServiceFactory.register_llm_provider(
        AIProvider.OPENAI,
        OpenAILLMProvider
    )
