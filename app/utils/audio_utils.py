"""
音频处理工具函数
"""

import base64
import io
import wave
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

from app.core.exceptions import ValidationException


# 扩展名 -> MIME类型
CONTENT_TYPE_BY_EXTENSION = {
    "wav": "audio/wav",
    "wave": "audio/wav",
    "mp3": "audio/mpeg",
    "mpeg": "audio/mpeg",
    "m4a": "audio/x-m4a",
    "mp4": "audio/mp4",
    "webm": "audio/webm",
}

# MIME类型 -> 存储扩展名
EXTENSION_BY_CONTENT_TYPE = {
    "audio/wav": "wav",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/mp4": "mp4",
    "audio/x-m4a": "m4a",
    "audio/webm": "webm",
}

# base64每3字节输入产生4字符输出，块大小必须是3的倍数
BASE64_CHUNK_SIZE = 3 * 256 * 1024


def file_extension(filename: Optional[str]) -> str:
    """小写扩展名(不含点)，无扩展名时返回空串"""
    if not filename:
        return ""
    return Path(filename).suffix.lower().lstrip(".")


def resolve_content_type(filename: Optional[str], declared_type: Optional[str], supported_types: list) -> str:
    """
    确定音频的MIME类型

    声明的类型在支持列表中时直接使用，否则按扩展名推断。

    Raises:
        ValidationException: 类型和扩展名都无法识别
    """
    if declared_type:
        declared_type = declared_type.split(";", 1)[0].strip().lower()
        if declared_type in supported_types:
            return declared_type

    extension = file_extension(filename)
    content_type = CONTENT_TYPE_BY_EXTENSION.get(extension)
    if content_type is None:
        raise ValidationException(
            f"Unsupported audio format: {declared_type or 'unknown'} ({filename or 'no filename'})"
        )
    return content_type


def extension_for(content_type: str) -> str:
    """MIME类型对应的存储扩展名"""
    return EXTENSION_BY_CONTENT_TYPE.get(content_type, "webm")


def audio_format_for(content_type: Optional[str], filename: Optional[str] = None) -> str:
    """模型接口使用的音频格式名，如 wav / mp3"""
    if content_type:
        content_type = content_type.split(";", 1)[0].strip().lower()
        if content_type in EXTENSION_BY_CONTENT_TYPE:
            return EXTENSION_BY_CONTENT_TYPE[content_type]

    extension = file_extension(filename)
    if extension in CONTENT_TYPE_BY_EXTENSION:
        return EXTENSION_BY_CONTENT_TYPE[CONTENT_TYPE_BY_EXTENSION[extension]]
    return extension or "wav"


def encode_base64_chunked(data: bytes, chunk_size: int = BASE64_CHUNK_SIZE) -> str:
    """分块进行base64编码，结果与一次性编码相同"""
    if chunk_size % 3:
        raise ValueError("chunk_size must be a multiple of 3")
    return "".join(_encode_chunks(data, chunk_size))


def _encode_chunks(data: bytes, chunk_size: int) -> Iterable[str]:
    view = memoryview(data)
    for start in range(0, len(view), chunk_size):
        yield base64.b64encode(view[start:start + chunk_size]).decode("ascii")


def encode_wav(samples: np.ndarray, sample_rate: int, channels: int = 1) -> bytes:
    """
    将float32采样编码为16位PCM的WAV数据

    Args:
        samples: 取值范围[-1, 1]的采样，形状为 (frames,) 或 (frames, channels)
        sample_rate: 采样率
        channels: 声道数

    Returns:
        bytes: WAV文件内容
    """
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(pcm.tobytes())
    return buffer.getvalue()


def wav_duration(data: bytes) -> float:
    """WAV数据时长(秒)"""
    with wave.open(io.BytesIO(data), "rb") as wav_file:
        rate = wav_file.getframerate()
        return wav_file.getnframes() / float(rate) if rate else 0.0
