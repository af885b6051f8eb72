"""
core.db.pg_client
------------------

基于 psycopg2 的 PostgreSQL 连接（强制 TLS）。

设计原则：
- 不直接读取 configs/*.yaml 或环境变量，通过 PostgresConfig 接收调用方注入的配置；
- 一个 PostgresConnection 只服务一次运行：connect -> execute -> close；
- 连接建立后立即执行 "select 1;" 做健康检查。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import psycopg2
import psycopg2.extras

from core.errors import DatabaseConnectionError, QueryExecutionError
from core.logger import get_logger

from .models import QueryResult, ResultField, SqlStatement

_logger = get_logger(__name__)

_HEALTH_CHECK_SQL = "select 1;"


@dataclass
class PostgresConfig:
    """
    PostgreSQL 连接配置。

    输入：
        host / port / user / password / database: 连接参数；
        sslmode: libpq 的 sslmode，默认 "verify-full"（校验证书链与主机名）；
        sslrootcert: 根证书路径；"system" 表示使用系统信任库，None 时沿用 libpq 默认（~/.postgresql/root.crt）；
        connect_timeout: 建连超时（秒）。
    """

    host: str
    port: int
    user: str
    password: str
    database: str
    sslmode: str = "verify-full"
    sslrootcert: Optional[str] = None
    connect_timeout: int = 30


class PostgresConnection:
    """单次运行使用的 PostgreSQL 连接，支持 with 语句保证关闭。"""

    def __init__(self, cfg: PostgresConfig) -> None:
        self._cfg = cfg
        self._conn: Optional[Any] = None

    def connect(self) -> "PostgresConnection":
        """
        建立 TLS 连接并做健康检查。

        异常：
            DatabaseConnectionError: 建连、TLS 或认证失败，或健康检查失败。
        """
        cfg = self._cfg
        params: Dict[str, Any] = dict(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            dbname=cfg.database,
            sslmode=cfg.sslmode,
            connect_timeout=cfg.connect_timeout,
        )
        if cfg.sslrootcert:
            params["sslrootcert"] = cfg.sslrootcert
        try:
            conn = psycopg2.connect(**params)
        except psycopg2.Error as exc:
            msg = f"连接数据库失败：{cfg.host}:{cfg.port}/{cfg.database}，错误：{exc!s}"
            _logger.error(msg)
            raise DatabaseConnectionError(msg) from exc

        conn.autocommit = True
        self._conn = conn
        try:
            with conn.cursor() as cur:
                cur.execute(_HEALTH_CHECK_SQL)
        except psycopg2.Error as exc:
            self.close()
            msg = f"数据库健康检查失败：{exc!s}"
            _logger.error(msg)
            raise DatabaseConnectionError(msg) from exc

        _logger.info("已连接数据库 %s:%s/%s (sslmode=%s)", cfg.host, cfg.port, cfg.database, cfg.sslmode)
        return self

    def execute(self, statement: SqlStatement) -> QueryResult:
        """
        执行一条 SQL 并返回 QueryResult。

        custom 语句或无绑定参数的语句原样发送，不经过参数替换。

        异常：
            DatabaseConnectionError: 尚未连接；
            QueryExecutionError: 数据库拒绝执行。
        """
        if self._conn is None:
            raise DatabaseConnectionError("尚未建立数据库连接，请先调用 connect()。")

        params = dict(statement.params) if statement.params else None
        try:
            with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(statement.sql, params)
                return _build_result(cur)
        except psycopg2.Error as exc:
            msg = f"SQL 执行失败：{exc!s}"
            _logger.error(msg)
            raise QueryExecutionError(msg) from exc

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        finally:
            self._conn = None

    def __enter__(self) -> "PostgresConnection":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _build_result(cur: Any) -> QueryResult:
    """把游标状态转换为 QueryResult；无结果集的语句（如 UPDATE）返回空行列表。"""
    status = cur.statusmessage or ""
    command = status.split()[0] if status else None

    if cur.description is None:
        return QueryResult(rows=[], fields=(), command=command, row_count=max(cur.rowcount, 0))

    fields = tuple(ResultField(name=col.name, data_type_id=col.type_code) for col in cur.description)
    rows: List[Dict[str, Any]] = [dict(row) for row in cur.fetchall()]
    return QueryResult(rows=rows, fields=fields, command=command, row_count=len(rows))
