"""
自定义异常类
"""
from typing import Optional


class MovieInfernoException(Exception):
    """基础异常类"""

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code or "UNKNOWN_ERROR"
        super().__init__(self.message)


class TMDBException(MovieInfernoException):
    """TMDB API 异常"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        code = f"TMDB_ERROR_{status_code}" if status_code else "TMDB_ERROR"
        super().__init__(message, code)


class TMDBTransientError(TMDBException):
    """可重试的 TMDB 错误：网络异常、429、5xx"""


class DatabaseException(MovieInfernoException):
    """数据库异常"""

    def __init__(self, message: str):
        super().__init__(message, "DATABASE_ERROR")


class ConfigurationException(MovieInfernoException):
    """配置缺失异常"""

    def __init__(self, message: str, setting: Optional[str] = None):
        self.setting = setting
        super().__init__(message, "CONFIGURATION_ERROR")


class ValidationException(MovieInfernoException):
    """验证异常"""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class NotFoundException(MovieInfernoException):
    """资源未找到异常"""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        message = f"{resource_type} not found"
        if resource_id:
            message += f": {resource_id}"
        super().__init__(message, "NOT_FOUND")


class AuthenticationException(MovieInfernoException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED")


class PermissionDeniedException(MovieInfernoException):
    def __init__(self, message: str = "Forbidden - Admin access required"):
        super().__init__(message, "FORBIDDEN")


class QueryBuilderError(MovieInfernoException):
    """查询构造器使用错误"""

    def __init__(self, message: str, code: str = "QUERY_BUILDER_ERROR"):
        super().__init__(message, code)


class InvalidIdentifierError(QueryBuilderError):
    """表名/列名不在白名单中"""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind}: {name}", "INVALID_IDENTIFIER")


class QueryConsumedError(QueryBuilderError):
    """同一个构造器上重复执行终结操作"""

    def __init__(self, table: str):
        super().__init__(
            f"Query on '{table}' has already been executed; build a new query",
            "QUERY_CONSUMED",
        )
