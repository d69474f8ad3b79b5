"""
音频传输服务 - 将录音或上传的音频存入临时上传桶
"""

from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import FileProcessingException, ValidationException
from app.core.logging import audio_logger as logger
from app.core.storage import StorageBackend, get_storage_manager
from app.schemas.gateway import UploadedAudio
from app.utils.audio_utils import resolve_content_type, extension_for
from app.utils.file_utils import generate_unique_filename

TEMP_AUDIO_PREFIX = "temp_audio"


class AudioTransportService:
    """音频传输服务"""

    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_file_size: int = None,
        supported_types: list = None
    ):
        self._storage = storage
        self.http_client = http_client
        self.max_file_size = max_file_size or settings.max_file_size
        self.supported_types = supported_types or settings.supported_audio_types

    @property
    def storage(self) -> StorageBackend:
        return self._storage or get_storage_manager().bucket(settings.uploads_bucket)

    async def upload(
        self,
        content: bytes,
        filename: Optional[str],
        declared_type: Optional[str],
        user_id: str
    ) -> UploadedAudio:
        """
        上传音频到 temp_audio/<user_id>/ 下

        Args:
            content: 音频数据
            filename: 原始文件名
            declared_type: 客户端声明的MIME类型
            user_id: 用户ID

        Returns:
            UploadedAudio: 存储路径、公开URL、类型和大小
        """
        if not content:
            raise FileProcessingException("Invalid or empty audio file")
        if len(content) > self.max_file_size:
            raise ValidationException(
                f"Audio file too large, maximum is {self.max_file_size // 1024 // 1024}MB"
            )

        content_type = resolve_content_type(filename, declared_type, self.supported_types)
        path = f"{TEMP_AUDIO_PREFIX}/{user_id}/{generate_unique_filename(extension_for(content_type))}"

        # 不覆盖: 路径冲突时由调用方换一个新路径重试
        await self.storage.upload(path, content, content_type=content_type, upsert=False)
        url = self.storage.get_public_url(path)

        logger.info(f"音频已上传: {path} ({content_type}, {len(content)} bytes)")
        return UploadedAudio(path=path, url=url, content_type=content_type, size=len(content))

    async def verify_accessible(self, url: str) -> bool:
        """HEAD请求确认URL可访问"""
        try:
            if self.http_client is not None:
                response = await self.http_client.head(url)
            else:
                async with httpx.AsyncClient(timeout=30) as client:
                    response = await client.head(url)
        except httpx.HTTPError as e:
            logger.warning(f"音频URL不可访问 {url}: {e}")
            return False

        if response.status_code >= 400:
            logger.warning(f"音频URL不可访问 {url}: HTTP {response.status_code}")
            return False
        return True

    async def remove(self, path: str) -> bool:
        """删除临时上传(尽力而为)"""
        try:
            deleted = await self.storage.delete(path)
        except Exception as e:
            logger.warning(f"清理临时音频失败 {path}: {e}")
            return False
        if deleted:
            logger.debug(f"临时音频已删除: {path}")
        return deleted


# 全局音频传输服务实例
audio_transport_service = AudioTransportService()


def get_audio_transport_service() -> AudioTransportService:
    """获取音频传输服务实例"""
    return audio_transport_service
