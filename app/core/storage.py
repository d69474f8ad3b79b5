"""
对象存储系统 - 按桶组织，支持本地存储和S3
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Tuple
from pathlib import Path
from urllib.parse import quote, unquote

import aiofiles
import boto3
from botocore.exceptions import ClientError, BotoCoreError

from app.config import settings
from app.core.exceptions import StorageException, ValidationException
from app.core.logging import storage_logger as logger


class StorageBackend(ABC):
    """存储桶后端抽象基类"""

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name

    @abstractmethod
    async def upload(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = True
    ) -> str:
        """上传文件，返回对象路径"""
        pass

    @abstractmethod
    async def download(self, file_path: str) -> bytes:
        """下载文件，不存在时抛出 FileNotFoundError"""
        pass

    @abstractmethod
    async def delete(self, file_path: str) -> bool:
        """删除文件"""
        pass

    @abstractmethod
    async def exists(self, file_path: str) -> bool:
        """检查文件是否存在"""
        pass

    @abstractmethod
    async def list(self, prefix: str) -> List[str]:
        """列出前缀下的所有对象路径"""
        pass

    @property
    @abstractmethod
    def public_url_prefix(self) -> str:
        """公开访问URL前缀(以/结尾)"""
        pass

    def get_public_url(self, file_path: str) -> str:
        """获取文件的公开访问URL"""
        return f"{self.public_url_prefix}{quote(file_path)}"

    def path_from_url(self, url: str) -> Optional[str]:
        """如果URL属于本桶，返回对象路径"""
        prefix = self.public_url_prefix
        if url and url.startswith(prefix):
            path = unquote(url[len(prefix):].split("?", 1)[0])
            return path or None
        return None


class LocalStorageBackend(StorageBackend):
    """本地文件存储后端"""

    def __init__(self, bucket_name: str, base_path: str, public_base_url: str):
        super().__init__(bucket_name)
        self.base_path = Path(base_path, bucket_name).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    @property
    def public_url_prefix(self) -> str:
        return f"{self.public_base_url}/files/{self.bucket_name}/"

    def _get_full_path(self, file_path: str) -> Path:
        """获取完整文件路径，拒绝越出桶目录的路径"""
        full_path = (self.base_path / file_path).resolve()
        if full_path != self.base_path and self.base_path not in full_path.parents:
            raise ValidationException(f"Invalid storage path: {file_path}")
        return full_path

    async def upload(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = True
    ) -> str:
        full_path = self._get_full_path(file_path)
        if not upsert and full_path.exists():
            raise StorageException(f"Object already exists: {file_path}")

        full_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(full_path, "wb") as f:
            await f.write(content)

        return file_path

    async def download(self, file_path: str) -> bytes:
        full_path = self._get_full_path(file_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def delete(self, file_path: str) -> bool:
        full_path = self._get_full_path(file_path)
        try:
            if full_path.is_file():
                full_path.unlink()
                return True
        except OSError as e:
            logger.error(f"删除文件失败 {self.bucket_name}/{file_path}: {e}")
        return False

    async def exists(self, file_path: str) -> bool:
        return self._get_full_path(file_path).is_file()

    async def list(self, prefix: str) -> List[str]:
        directory = self._get_full_path(prefix)
        if not directory.is_dir():
            return []

        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(
            None,
            lambda: sorted(p for p in directory.rglob("*") if p.is_file())
        )
        return [p.relative_to(self.base_path).as_posix() for p in files]


class S3StorageBackend(StorageBackend):
    """S3云存储后端"""

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        public_base_url: Optional[str] = None,
        s3_client=None
    ):
        super().__init__(bucket_name)
        self.region_name = region_name
        self._public_base_url = (
            public_base_url.rstrip("/") + f"/{bucket_name}"
            if public_base_url
            else f"https://{bucket_name}.s3.{region_name}.amazonaws.com"
        )
        self.s3_client = s3_client or boto3.client(
            "s3",
            region_name=region_name,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key
        )

    @property
    def public_url_prefix(self) -> str:
        return f"{self._public_base_url}/"

    async def _run(self, func):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def upload(
        self,
        file_path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = True
    ) -> str:
        upload_args = {
            "Bucket": self.bucket_name,
            "Key": file_path,
            "Body": content
        }
        if content_type:
            upload_args["ContentType"] = content_type
        if not upsert:
            upload_args["IfNoneMatch"] = "*"

        try:
            await self._run(lambda: self.s3_client.put_object(**upload_args))
            return file_path
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3上传失败 {self.bucket_name}/{file_path}: {e}")
            raise StorageException(f"Failed to upload {file_path}: {e}")

    async def download(self, file_path: str) -> bytes:
        try:
            response = await self._run(
                lambda: self.s3_client.get_object(Bucket=self.bucket_name, Key=file_path)
            )
            return response["Body"].read()
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                raise FileNotFoundError(f"File not found: {file_path}")
            logger.error(f"S3下载失败 {self.bucket_name}/{file_path}: {e}")
            raise StorageException(f"Failed to download {file_path}: {e}")

    async def delete(self, file_path: str) -> bool:
        try:
            await self._run(
                lambda: self.s3_client.delete_object(Bucket=self.bucket_name, Key=file_path)
            )
            return True
        except ClientError as e:
            logger.error(f"S3删除失败 {self.bucket_name}/{file_path}: {e}")
            return False

    async def exists(self, file_path: str) -> bool:
        try:
            await self._run(
                lambda: self.s3_client.head_object(Bucket=self.bucket_name, Key=file_path)
            )
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] != "404":
                logger.error(f"S3检查文件存在失败: {e}")
            return False

    async def list(self, prefix: str) -> List[str]:
        prefix = prefix.rstrip("/") + "/"

        def _list_all() -> List[str]:
            keys = []
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                keys.extend(item["Key"] for item in page.get("Contents", []))
            return keys

        try:
            return await self._run(_list_all)
        except ClientError as e:
            logger.error(f"S3列举对象失败 {self.bucket_name}/{prefix}: {e}")
            raise StorageException(f"Failed to list {prefix}: {e}")


class StorageManager:
    """存储桶管理器"""

    def __init__(
        self,
        backend: str = "local",
        base_dir: str = "storage",
        public_base_url: str = "http://localhost:8000",
        region_name: str = "us-east-1",
        s3_public_base_url: Optional[str] = None
    ):
        if backend not in ("local", "s3"):
            raise ValueError(f"Unknown storage backend: {backend}")
        self.backend = backend
        self.base_dir = base_dir
        self.public_base_url = public_base_url
        self.region_name = region_name
        self.s3_public_base_url = s3_public_base_url
        self._buckets: Dict[str, StorageBackend] = {}

    def bucket(self, name: str) -> StorageBackend:
        """获取(或创建)指定桶的后端实例"""
        if name not in self._buckets:
            if self.backend == "s3":
                self._buckets[name] = S3StorageBackend(
                    bucket_name=name,
                    region_name=self.region_name,
                    public_base_url=self.s3_public_base_url
                )
            else:
                self._buckets[name] = LocalStorageBackend(
                    bucket_name=name,
                    base_path=self.base_dir,
                    public_base_url=self.public_base_url
                )
        return self._buckets[name]

    def locate(self, url: str, bucket_names: List[str]) -> Optional[Tuple[str, str]]:
        """解析URL对应的(桶名, 对象路径)，不属于任何已知桶时返回None"""
        for name in bucket_names:
            path = self.bucket(name).path_from_url(url)
            if path:
                return name, path
        return None


# 全局存储管理器实例
storage_manager = StorageManager(
    backend=settings.storage_backend,
    base_dir=settings.storage_dir,
    public_base_url=settings.public_base_url,
    region_name=settings.aws_region,
    s3_public_base_url=settings.s3_public_base_url
)


def get_storage_manager() -> StorageManager:
    """获取存储管理器实例"""
    return storage_manager
