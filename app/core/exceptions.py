"""
自定义异常类
"""

from fastapi import HTTPException, status


class LectureScribeException(Exception):
    """LectureScribe应用基础异常"""

    def __init__(self, message: str, code: str = "GENERAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class DatabaseException(LectureScribeException):
    """数据库异常"""

    def __init__(self, message: str = "数据库操作失败"):
        super().__init__(message, "DATABASE_ERROR")


class StorageException(LectureScribeException):
    """对象存储异常"""

    def __init__(self, message: str = "存储操作失败"):
        super().__init__(message, "STORAGE_ERROR")


class AIServiceException(LectureScribeException):
    """AI服务异常"""

    def __init__(self, message: str = "AI服务调用失败"):
        super().__init__(message, "AI_SERVICE_ERROR")


class FileProcessingException(LectureScribeException):
    """文件处理异常"""

    def __init__(self, message: str = "文件处理失败"):
        super().__init__(message, "FILE_PROCESSING_ERROR")


class ValidationException(LectureScribeException):
    """数据验证异常"""

    def __init__(self, message: str = "数据验证失败"):
        super().__init__(message, "VALIDATION_ERROR")


class FolderCycleException(ValidationException):
    """文件夹循环引用异常"""

    def __init__(self, message: str = "Cannot move a folder into its own subfolder"):
        super().__init__(message)


class ResourceNotFoundException(LectureScribeException):
    """资源未找到异常"""

    def __init__(self, resource: str = "Resource"):
        message = f"{resource} not found"
        super().__init__(message, "RESOURCE_NOT_FOUND")


class PermissionDeniedException(LectureScribeException):
    """权限不足异常"""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "PERMISSION_DENIED")


class ConfigurationException(LectureScribeException):
    """配置错误异常"""

    def __init__(self, message: str = "配置错误"):
        super().__init__(message, "CONFIGURATION_ERROR")


STATUS_CODE_MAPPING = {
    "RESOURCE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "CONFIGURATION_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DATABASE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "STORAGE_ERROR": status.HTTP_502_BAD_GATEWAY,
    "AI_SERVICE_ERROR": status.HTTP_502_BAD_GATEWAY,
    "FILE_PROCESSING_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def status_code_for(exc: LectureScribeException) -> int:
    """获取异常对应的HTTP状态码"""
    return STATUS_CODE_MAPPING.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


# HTTP异常映射
def lecturescribe_exception_to_http_exception(exc: LectureScribeException) -> HTTPException:
    """将应用异常转换为HTTP异常"""
    return HTTPException(
        status_code=status_code_for(exc),
        detail={
            "error": True,
            "code": exc.code,
            "message": exc.message,
            "type": type(exc).__name__
        }
    )
