"""
核心功能包
"""

from .exceptions import (
    LectureScribeException,
    DatabaseException,
    StorageException,
    AIServiceException,
    FileProcessingException,
    ValidationException,
    FolderCycleException,
    ResourceNotFoundException,
    PermissionDeniedException,
    ConfigurationException
)

from .logging import (
    setup_logging,
    get_logger,
    api_logger,
    service_logger,
    ai_logger,
    db_logger,
    audio_logger,
    storage_logger
)

from .middleware import (
    RequestLoggingMiddleware,
    ExceptionHandlingMiddleware
)

__all__ = [
    # Exceptions
    "LectureScribeException",
    "DatabaseException",
    "StorageException",
    "AIServiceException",
    "FileProcessingException",
    "ValidationException",
    "FolderCycleException",
    "ResourceNotFoundException",
    "PermissionDeniedException",
    "ConfigurationException",

    # Logging
    "setup_logging",
    "get_logger",
    "api_logger",
    "service_logger",
    "ai_logger",
    "db_logger",
    "audio_logger",
    "storage_logger",

    # Middleware
    "RequestLoggingMiddleware",
    "ExceptionHandlingMiddleware",
]
