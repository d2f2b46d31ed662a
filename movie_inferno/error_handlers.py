"""
全局错误处理器
"""
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from movie_inferno.logger import logger
from movie_inferno.utils.exceptions import (
    AuthenticationException,
    ConfigurationException,
    DatabaseException,
    MovieInfernoException,
    NotFoundException,
    PermissionDeniedException,
    QueryBuilderError,
    QueryConsumedError,
    TMDBException,
    ValidationException,
)

# 按顺序匹配，子类放在父类之前
STATUS_BY_EXCEPTION = (
    (NotFoundException, status.HTTP_404_NOT_FOUND),
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (AuthenticationException, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedException, status.HTTP_403_FORBIDDEN),
    (QueryConsumedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (QueryBuilderError, status.HTTP_400_BAD_REQUEST),
    (TMDBException, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationException, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (DatabaseException, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: MovieInfernoException) -> int:
    for exc_type, http_status in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(http_status: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=http_status,
        content={"success": False, "error": message, "code": code, **extra},
    )


async def movie_inferno_exception_handler(
    request: Request,
    exc: MovieInfernoException
) -> JSONResponse:
    """服务异常处理器"""
    http_status = status_for(exc)
    log = logger.error if http_status >= 500 else logger.warning
    log(
        f"服务异常: {exc.code} - {exc.message}",
        extra={"path": request.url.path, "method": request.method}
    )
    return error_response(http_status, exc.message, exc.code)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """请求验证异常处理器"""
    logger.warning(
        f"请求验证失败: {exc.errors()}",
        extra={"path": request.url.path, "method": request.method}
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Request validation failed",
        "VALIDATION_ERROR",
        details=jsonable_errors(exc),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """通用异常处理器"""
    logger.exception(
        f"未处理的异常: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method}
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_SERVER_ERROR",
    )
