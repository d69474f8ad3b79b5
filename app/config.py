"""
应用配置管理
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from pathlib import Path

# AI配置相关的类将在需要时动态导入以避免循环依赖


class Settings(BaseSettings):
    """应用配置"""

    # 基本配置
    app_name: str = "LectureScribe API"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="调试模式")

    # 服务器配置
    host: str = Field(default="0.0.0.0", description="服务器地址")
    port: int = Field(default=8000, description="服务器端口")
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="对外访问的基础URL，用于生成本地存储文件的公开链接"
    )

    # 数据库配置
    database_url: str = Field(
        default="sqlite+aiosqlite:///./lecturescribe.db",
        description="数据库连接URL"
    )
    database_echo: bool = Field(default=False, description="SQL语句调试输出")
    database_pool_size: int = Field(default=10, description="连接池大小")
    database_max_overflow: int = Field(default=20, description="连接池最大溢出")

    # AI服务配置
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API密钥")
    openai_base_url: Optional[str] = Field(default=None, description="OpenAI API基础URL")
    openai_model: str = Field(default="gpt-4o-mini", description="默认文本模型")
    openai_audio_model: str = Field(default="gpt-4o-audio-preview", description="支持音频输入的模型")
    whisper_model: str = Field(default="whisper-1", description="默认Whisper模型")
    ai_timeout: int = Field(default=120, description="AI请求超时时间(秒)")

    # 代理配置
    http_proxy: Optional[str] = Field(default=None, description="HTTP代理地址")
    https_proxy: Optional[str] = Field(default=None, description="HTTPS代理地址")
    proxy_auth: Optional[str] = Field(default=None, description="代理认证信息 (username:password)")

    # 对象存储配置
    storage_backend: str = Field(default="local", description="存储后端: local 或 s3")
    storage_dir: str = Field(default="storage", description="本地存储根目录")
    uploads_bucket: str = Field(default="audio_uploads", description="临时音频上传桶")
    notes_bucket: str = Field(default="notes", description="笔记持久化桶")
    max_file_size: int = Field(default=100 * 1024 * 1024, description="最大文件大小(100MB)")
    supported_audio_types: list = Field(
        default=[
            "audio/wav", "audio/mp3", "audio/mpeg",
            "audio/mp4", "audio/x-m4a", "audio/webm"
        ],
        description="可直接使用声明MIME类型的音频格式"
    )

    # AWS S3配置
    aws_access_key_id: Optional[str] = Field(default=None, description="AWS访问密钥ID")
    aws_secret_access_key: Optional[str] = Field(default=None, description="AWS秘密访问密钥")
    aws_region: str = Field(default="us-east-1", description="AWS区域")
    s3_public_base_url: Optional[str] = Field(
        default=None,
        description="S3公开访问基础URL，为空时使用 https://<bucket>.s3.<region>.amazonaws.com"
    )

    # 笔记处理配置
    min_transcription_length: int = Field(default=10, description="有效转录的最小字符数")
    preview_length: int = Field(default=150, description="笔记预览截取长度")
    autosave_delay: float = Field(default=1.5, description="自动保存防抖延迟(秒)")

    # 安全配置
    secret_key: str = Field(
        default="your-secret-key-change-this-in-production",
        description="JWT密钥"
    )
    algorithm: str = Field(default="HS256", description="JWT算法")
    access_token_expire_minutes: int = Field(default=60, description="访问令牌过期时间(分钟)")

    # CORS配置
    allowed_origins: list = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="允许的跨域源"
    )

    # 日志配置
    log_dir: str = Field(default="logs", description="日志目录")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def ai_config(self):
        """获取AI服务配置"""
        # 动态导入以避免循环依赖
        from app.services.ai.base import AIProvider, AIConfig

        proxy_config = {
            "http_proxy": self.http_proxy,
            "https_proxy": self.https_proxy,
            "proxy_auth": self.proxy_auth
        }

        return AIConfig(
            stt_provider=AIProvider.OPENAI,
            llm_provider=AIProvider.OPENAI,
            stt_config={
                "api_key": self.openai_api_key,
                "base_url": self.openai_base_url,
                "model": self.whisper_model,
                "timeout": self.ai_timeout,
                **proxy_config
            },
            llm_config={
                "api_key": self.openai_api_key,
                "base_url": self.openai_base_url,
                "model": self.openai_model,
                "audio_model": self.openai_audio_model,
                "timeout": self.ai_timeout,
                **proxy_config
            },
            default_stt_model=self.whisper_model,
            default_llm_model=self.openai_model
        )

    def ensure_directories(self):
        """确保必要的目录存在"""
        Path(self.log_dir).mkdir(exist_ok=True)
        if self.storage_backend == "local":
            for bucket in (self.uploads_bucket, self.notes_bucket):
                Path(self.storage_dir, bucket).mkdir(parents=True, exist_ok=True)


# 创建全局配置实例
settings = Settings()
settings.ensure_directories()
