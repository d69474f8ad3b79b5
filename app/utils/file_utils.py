"""
文件处理工具函数
"""

import time
import uuid
from typing import Optional
from urllib.parse import urlparse

import aiofiles


def generate_unique_filename(extension: str, prefix: str = "audio") -> str:
    """
    生成唯一文件名: <prefix>_<毫秒时间戳>_<随机串>.<ext>

    Args:
        extension: 扩展名(不含点)
        prefix: 文件名前缀

    Returns:
        str: 唯一文件名
    """
    timestamp = int(time.time() * 1000)
    unique_id = uuid.uuid4().hex[:8]
    return f"{prefix}_{timestamp}_{unique_id}.{extension}"


def get_file_extension(url: Optional[str]) -> str:
    """从URL或路径的最后一段取扩展名(含点)，没有时返回空串"""
    if not url:
        return ""
    filename = urlparse(url).path.rsplit("/", 1)[-1]
    if "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[-1]


async def read_file(file_path: str) -> bytes:
    """读取本地文件"""
    async with aiofiles.open(file_path, "rb") as f:
        return await f.read()


def format_file_size(size_bytes: int) -> str:
    """格式化文件大小显示"""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
