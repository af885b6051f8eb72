"""
core.db.provider
-----------------

按配置类型选择连接后端，并以上下文管理器形式保证连接在成功与失败路径上都被关闭。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Protocol, Union

from core.logger import get_logger

from .api_client import ApiQueryConfig, ApiQueryConnection
from .models import QueryResult, SqlStatement
from .pg_client import PostgresConfig, PostgresConnection

_logger = get_logger(__name__)

ConnectionConfig = Union[PostgresConfig, ApiQueryConfig]


class Connection(Protocol):
    def connect(self) -> "Connection": ...

    def execute(self, statement: SqlStatement) -> QueryResult: ...

    def close(self) -> None: ...


def create_connection(cfg: ConnectionConfig) -> Connection:
    """根据配置对象类型构造未连接的后端实例。"""
    if isinstance(cfg, PostgresConfig):
        return PostgresConnection(cfg)
    if isinstance(cfg, ApiQueryConfig):
        return ApiQueryConnection(cfg)
    raise TypeError(f"不支持的连接配置类型：{type(cfg)!r}")


@contextmanager
def open_connection(cfg: ConnectionConfig) -> Iterator[Connection]:
    """
    打开连接并在退出时关闭。

    输入：
        cfg: PostgresConfig 或 ApiQueryConfig。
    输出：
        已连接的 Connection。
    异常：
        DatabaseConnectionError: 建连失败时抛出，此时不会进入 with 块。
    """
    conn = create_connection(cfg).connect()
    try:
        yield conn
    finally:
        conn.close()
        _logger.debug("连接已关闭。")
