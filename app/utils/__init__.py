"""
工具函数包
"""

from .audio_utils import (
    resolve_content_type,
    extension_for,
    audio_format_for,
    encode_base64_chunked,
    encode_wav,
    wav_duration
)

from .file_utils import (
    generate_unique_filename,
    get_file_extension,
    read_file,
    format_file_size
)

__all__ = [
    "resolve_content_type",
    "extension_for",
    "audio_format_for",
    "encode_base64_chunked",
    "encode_wav",
    "wav_duration",
    "generate_unique_filename",
    "get_file_extension",
    "read_file",
    "format_file_size"
]
