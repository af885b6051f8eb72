"""
core.db: 数据库与查询相关的底层工具。

当前实现：
- PostgreSQL 后端（基于 psycopg2，强制 TLS），支持参数绑定；
- HTTP 查询 API 后端（基于 requests），发送字面 SQL；
- open_connection: 按配置选择后端，保证连接关闭。

注意：
- 禁止引用 modules 下的任何内容；
- 不直接读取 configs/*.yaml，由 scripts 负责配置注入。
"""

from __future__ import annotations

from .api_client import ApiQueryConfig, ApiQueryConnection
from .models import QueryResult, ResultField, SqlStatement
from .pg_client import PostgresConfig, PostgresConnection
from .provider import ConnectionConfig, create_connection, open_connection

__all__ = [
    "ApiQueryConfig",
    "ApiQueryConnection",
    "ConnectionConfig",
    "PostgresConfig",
    "PostgresConnection",
    "QueryResult",
    "ResultField",
    "SqlStatement",
    "create_connection",
    "open_connection",
]
