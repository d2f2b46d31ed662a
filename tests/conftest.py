# tests/conftest.py
"""
全局测试引导
- 每个测试一个内存 SQLite 的 DatabaseClient
- TMDB 通过 httpx.MockTransport 提供固定数据，不访问网络
- FastAPI 应用通过 dependency_overrides 注入上述替身
"""
import os

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")

from tests.fixtures.db import *    # noqa: E402,F401,F403
from tests.fixtures.tmdb import *  # noqa: E402,F401,F403
from tests.fixtures.app import *   # noqa: E402,F401,F403


@pytest.fixture
def anyio_backend():
    return "asyncio"
