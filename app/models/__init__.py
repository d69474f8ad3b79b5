"""
数据模型包
"""

from .folder import Folder
from .note_metadata import NoteMetadata
from .legacy_note import LegacyNote

__all__ = [
    "Folder",
    "NoteMetadata",
    "LegacyNote"
]
