"""
日志配置。

所有模块共用 "movie_inferno" 记录器；TMDB 的 api_key 以查询参数传递，
输出前统一打码，同时把 httpx / httpcore 的逐请求日志压到 WARNING。
"""
import logging
import re
import sys
from typing import Optional

from movie_inferno.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore")

API_KEY_PATTERN = re.compile(r"(api_key=)[^&\s'\"]+")


class RedactApiKeyFilter(logging.Filter):
    """把消息中的 api_key=xxx 替换为 api_key=***"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = API_KEY_PATTERN.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logger(
    name: str = "movie_inferno",
    level: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    初始化服务日志记录器，重复调用直接返回已配置的实例。

    Args:
        name: 记录器名称
        level: 日志级别，默认读取 LOG_LEVEL
        format_string: 自定义格式，默认 LOG_FORMAT
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = (level or get_settings().log_level or "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string or LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RedactApiKeyFilter())
    logger.addHandler(handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger


# 全局日志记录器
logger = setup_logger()
