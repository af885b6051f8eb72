"""
core.db.api_client
-------------------

基于 HTTP 查询 API 的 SQL 执行后端。

设计原则：
- 仅依赖标准库与 requests；
- 不直接读取 configs/*.yaml，通过 ApiQueryConfig 接收调用方注入的所有配置；
- HTTP 接口不支持参数绑定，发送 SqlStatement.text（全部占位符已替换为字面值）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import os

import requests

from core.errors import DatabaseConnectionError, QueryExecutionError
from core.logger import get_logger

from .models import QueryResult, ResultField, SqlStatement

_logger = get_logger(__name__)


@dataclass
class ApiQueryConfig:
    """
    HTTP 查询 API 配置对象。

    输入：
        query_url: 查询接口地址（完整 URL）。
        token_header: 承载 token 的请求头字段名，例如 "X-Token"。
        token_env_var: 从哪个环境变量中读取 token，例如 "QUERY_API_TOKEN"。
        timeout: 请求超时时间（秒）。
        extra_headers: 额外固定请求头（除 token 以外），可为空。
        extra_body: POST body 中除 SQL 以外的固定字段（如 db 等），可为空。
        sql_key: SQL 文本在 body 中对应的字段名，例如 "sql" 或 "query"。
    """

    query_url: str
    token_header: str
    token_env_var: str
    timeout: int = 300
    extra_headers: Dict[str, str] = field(default_factory=dict)
    extra_body: Dict[str, Any] = field(default_factory=dict)
    sql_key: str = "sql"


def _get_token_from_env(env_var: str) -> str:
    """
    从环境变量中读取 token。

    异常：
        DatabaseConnectionError: 未在环境变量中找到对应值时抛出。
    """
    token = os.getenv(env_var)
    if not token:
        msg = (
            f"未在环境变量中找到访问令牌：{env_var}。"
            f"请在终端中设置，例如：export {env_var}='你的真实token'，"
            f"或在 .env 文件中配置并确保已被加载。"
        )
        _logger.error(msg)
        raise DatabaseConnectionError(msg)
    return token


def _parse_response_data(payload: Dict[str, Any]) -> Any:
    """
    从响应 JSON 中解析出数据部分。

    兼容两类常见结构：
    1) {"data": [...]}              -> 直接返回 list；
    2) {"data": {"rows": [...]}}    -> 返回 data 字典，由调用方取 rows/columns。
    """
    if "data" not in payload:
        raise QueryExecutionError("响应 JSON 中不包含 'data' 字段，无法解析结果。")
    return payload["data"]


def _rows_from_data(data: Any) -> List[Dict[str, Any]]:
    """
    将 data 部分统一转换为 [{列名: 值}] 行列表。

    支持：
    - list[dict]；
    - {"rows": list[dict]}；
    - {"columns": [...], "rows": list[list]}（列式返回，按 columns 组装）。
    """
    if data is None:
        return []
    if isinstance(data, dict):
        rows = data.get("rows") or []
        columns = data.get("columns")
        if columns and rows and not isinstance(rows[0], dict):
            names = [c["name"] if isinstance(c, dict) else str(c) for c in columns]
            return [dict(zip(names, row)) for row in rows]
        data = rows
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise QueryExecutionError(f"无法将查询结果解析为行列表，data 类型为：{type(data)!r}。")
    return [dict(row) for row in data]


class ApiQueryConnection:
    """通过 HTTP 查询 API 执行 SQL；会话在 close() 时释放。"""

    def __init__(self, cfg: ApiQueryConfig) -> None:
        self._cfg = cfg
        self._session: Optional[requests.Session] = None
        self._headers: Dict[str, str] = {}

    def connect(self) -> "ApiQueryConnection":
        """
        读取 token 并打开 HTTP 会话。HTTP 接口无握手，真正的网络往返发生在 execute。
        """
        cfg = self._cfg
        if not cfg.query_url:
            raise DatabaseConnectionError("HTTP 查询 API 未配置 query_url。")
        token = _get_token_from_env(cfg.token_env_var)

        headers: Dict[str, str] = {}
        if cfg.extra_headers:
            headers.update(cfg.extra_headers)
        headers[cfg.token_header] = token
        self._headers = headers
        self._session = requests.Session()
        return self

    def execute(self, statement: SqlStatement) -> QueryResult:
        """
        发送 statement.text 并把响应转换为 QueryResult。

        逻辑：
            1. 按 cfg 构造 POST body（extra_body + {sql_key: sql}）；
            2. 网络异常 -> DatabaseConnectionError；非 2xx 或 JSON 结构不符 -> QueryExecutionError；
            3. 解析 data 为行列表，列元数据取自 columns 或首行的键。
        """
        if self._session is None:
            raise DatabaseConnectionError("尚未打开 HTTP 会话，请先调用 connect()。")
        cfg = self._cfg

        sql_text = (statement.text or "").strip()
        if not sql_text:
            raise QueryExecutionError("传入的 SQL 文本为空。")

        body: Dict[str, Any] = {}
        if cfg.extra_body:
            body.update(cfg.extra_body)
        body[cfg.sql_key] = sql_text

        try:
            resp = self._session.post(cfg.query_url, headers=self._headers, json=body, timeout=cfg.timeout)
        except requests.RequestException as exc:
            msg = f"请求查询接口失败：{cfg.query_url}，错误：{exc!s}"
            _logger.error(msg)
            raise DatabaseConnectionError(msg) from exc

        if not resp.ok:
            msg = f"查询接口返回异常状态码：{resp.status_code}。响应内容：{resp.text[:500]}"
            _logger.error(msg)
            raise QueryExecutionError(msg)

        try:
            payload: Dict[str, Any] = resp.json()
        except ValueError as exc:
            msg = "查询接口返回内容不是合法 JSON，无法解析。"
            _logger.error(msg)
            raise QueryExecutionError(msg) from exc

        data = _parse_response_data(payload)
        if data is None:
            _logger.warning("查询结果 data 字段为 None，返回空结果。")
        rows = _rows_from_data(data)

        columns = data.get("columns") if isinstance(data, dict) else None
        if columns:
            names = [c["name"] if isinstance(c, dict) else str(c) for c in columns]
        else:
            names = list(rows[0].keys()) if rows else []
        fields = tuple(ResultField(name=name) for name in names)

        return QueryResult(
            rows=rows,
            fields=fields,
            command=payload.get("command") or "SELECT",
            row_count=len(rows),
        )

    def close(self) -> None:
        if self._session is None:
            return
        try:
            self._session.close()
        finally:
            self._session = None

    def __enter__(self) -> "ApiQueryConnection":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
