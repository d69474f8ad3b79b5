"""
AI服务抽象基类
支持语音转录(STT)和大语言模型(LLM)的通用接口
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import io


class AIProvider(Enum):
    """AI服务提供商枚举"""
    OPENAI = "openai"


@dataclass
class TranscriptionResult:
    """语音转录结果"""
    text: str
    language: str
    segments: List[Dict[str, Any]] = field(default_factory=list)  # 分段信息


@dataclass
class LLMResponse:
    """大语言模型响应结果"""
    content: str
    model: str
    usage: Dict[str, int]  # tokens使用情况
    finish_reason: Optional[str]
    metadata: Dict[str, Any] = None


class STTProvider(ABC):
    """语音转录服务抽象基类"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.provider = self._get_provider_name()

    @abstractmethod
    def _get_provider_name(self) -> AIProvider:
        """获取提供商名称"""
        pass

    @abstractmethod
    async def transcribe_audio(
        self,
        audio_file: io.BytesIO,
        language: str = "auto",
        **kwargs
    ) -> TranscriptionResult:
        """
        转录音频文件

        Args:
            audio_file: 音频文件流(需带name属性以便识别格式)
            language: 语言代码，如 'zh', 'en', 'auto'
            **kwargs: 其他参数

        Returns:
            TranscriptionResult: 转录结果
        """
        pass


class LLMProvider(ABC):
    """大语言模型服务抽象基类"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.provider = self._get_provider_name()

    @abstractmethod
    def _get_provider_name(self) -> AIProvider:
        """获取提供商名称"""
        pass

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        model: str = None,
        temperature: float = 0.7,
        max_tokens: int = None,
        **kwargs
    ) -> LLMResponse:
        """
        聊天完成接口

        Args:
            messages: 消息列表，格式 [{"role": "user", "content": "..."}]
            model: 模型名称
            temperature: 温度参数
            max_tokens: 最大token数
            **kwargs: 其他参数

        Returns:
            LLMResponse: 模型响应
        """
        pass

    def supports_audio_format(self, audio_format: str) -> bool:
        """模型是否可以直接接收该格式的内联音频"""
        return False

    @abstractmethod
    async def complete_with_audio(
        self,
        prompt: str,
        audio_base64: str,
        audio_format: str,
        model: str = None,
        **kwargs
    ) -> LLMResponse:
        """
        将base64音频与指令一起提交给模型

        Args:
            prompt: 指令文本
            audio_base64: base64编码的音频
            audio_format: 音频格式，如 'wav', 'mp3'
            model: 模型名称

        Returns:
            LLMResponse: 模型响应
        """
        pass


@dataclass
class AIConfig:
    """AI服务配置"""
    stt_provider: AIProvider
    llm_provider: AIProvider
    stt_config: Dict[str, Any]
    llm_config: Dict[str, Any]
    default_stt_model: str = None
    default_llm_model: str = None


class AIServiceFactory:
    """AI服务工厂类"""

    _stt_providers = {}
    _llm_providers = {}

    @classmethod
    def register_stt_provider(cls, provider: AIProvider, provider_class):
        """注册STT提供商"""
        cls._stt_providers[provider] = provider_class

    @classmethod
    def register_llm_provider(cls, provider: AIProvider, provider_class):
        """注册LLM提供商"""
        cls._llm_providers[provider] = provider_class

    @classmethod
    def create_stt_provider(cls, provider: AIProvider, config: Dict[str, Any]) -> STTProvider:
        """创建STT服务实例"""
        if provider not in cls._stt_providers:
            raise ValueError(f"Unknown STT provider: {provider}")
        return cls._stt_providers[provider](config)

    @classmethod
    def create_llm_provider(cls, provider: AIProvider, config: Dict[str, Any]) -> LLMProvider:
        """创建LLM服务实例"""
        if provider not in cls._llm_providers:
            raise ValueError(f"Unknown LLM provider: {provider}")
        return cls._llm_providers[provider](config)
