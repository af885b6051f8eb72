"""
modules.query.resolver: 查询名称 -> 可执行 SQL。

模板存放于 modules/query/sql/<查询名称>.sql，每个占位符在模板中至多出现一次：
- _ADDRESS_: DapiServer 地址（来自登记表）；
- _TIME_ / _INTERVAL_: INTERVAL 的单位与长度；
- _DATE_: 按 --start/--end 生成的 WHERE 子句，或空串。

参数化执行时，地址与日期边界以 %(name)s 绑定；时间单位（枚举）与 interval（正整数）
已在参数解析阶段完成类型校验，直接写入 SQL。

custom: 前缀的查询原样透传，不做任何校验或转义，属于有意保留的信任边界。
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.db import SqlStatement
from core.errors import ConfigError, MissingQueryArgumentError, UnsupportedQueryError
from core.logger import get_logger
from core.utils import load_sql_templates

from .request import QueryRequest

_logger = get_logger(__name__)

CUSTOM_MARKER = "custom:"

ADDRESS_TOKEN = "_ADDRESS_"
TIME_TOKEN = "_TIME_"
INTERVAL_TOKEN = "_INTERVAL_"
DATE_TOKEN = "_DATE_"

# 占位符 -> 填充它所需的命令行参数
_TOKEN_OPTIONS: Dict[str, str] = {
    ADDRESS_TOKEN: "--chain",
    TIME_TOKEN: "--time",
    INTERVAL_TOKEN: "--interval",
    DATE_TOKEN: "--start/--end",
}

_TEMPLATE_DIR = Path(__file__).resolve().parent / "sql"

_EPOCH_EXPR = "extract(epoch from time)"


class QueryName(Enum):
    """支持的预置查询；值即命令行 --query 的取值与模板文件名。"""

    BEACON_EVENTS_FULL = "beacon-events-full"
    BEACON_TRANSACTIONS_FULL = "beacon-transactions-full"
    BEACON_GAS_COST = "beacon-gas-cost"
    BEACONS_GAS_COST_ALL = "beacons-gas-cost-all"
    BEACONS_GAS_COST_TIME = "beacons-gas-cost-time"


@lru_cache(maxsize=None)
def _load_templates(template_dir: Path = _TEMPLATE_DIR) -> Mapping[QueryName, str]:
    raw = load_sql_templates(template_dir)
    missing = [name.value for name in QueryName if name.value not in raw]
    if missing:
        raise ConfigError(f"SQL 模板缺失：{', '.join(missing)}（目录：{template_dir}）")
    return {name: raw[name.value] for name in QueryName}


def get_template(name: QueryName) -> str:
    return _load_templates()[name]


def _lookup_query_name(query_name: str) -> QueryName:
    try:
        return QueryName(query_name)
    except ValueError:
        raise UnsupportedQueryError(
            f"不支持的查询：{query_name}。"
            f'可选：{", ".join(q.value for q in QueryName)}；'
            f'自定义查询请使用 --query="custom: <CUSTOM SQL QUERY>"。'
        ) from None


def _utc_epoch(day: date) -> int:
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp())


def date_range_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[int], Optional[int]]:
    """
    把日期区间转换为 epoch 秒边界：下界为起始日 00:00 UTC，上界为结束日次日 00:00 UTC。
    """
    lower = _utc_epoch(start) if start is not None else None
    upper = _utc_epoch(end + timedelta(days=1)) if end is not None else None
    return lower, upper


def _date_clause(lower: Optional[int], upper: Optional[int], bind: bool) -> str:
    conditions: List[str] = []
    if lower is not None:
        conditions.append(f"{_EPOCH_EXPR} > {'%(start_epoch)s' if bind else lower}")
    if upper is not None:
        conditions.append(f"{_EPOCH_EXPR} < {'%(end_epoch)s' if bind else upper}")
    if not conditions:
        return ""
    return "WHERE " + " AND ".join(conditions)


def fill_template(template: str, request: QueryRequest) -> SqlStatement:
    """
    按请求填充模板，同时生成字面版本与参数化版本。

    异常：
        MissingQueryArgumentError: 填充后仍有占位符残留。
    """
    text = sql = template
    params: Dict[str, Any] = {}

    if request.resolved_address is not None:
        address = request.resolved_address
        text = text.replace(ADDRESS_TOKEN, address, 1)
        quoted = f"'{ADDRESS_TOKEN}'"
        if quoted in sql:
            sql = sql.replace(quoted, "%(address)s", 1)
            params["address"] = address
        else:
            sql = sql.replace(ADDRESS_TOKEN, address, 1)

    if request.time_unit is not None:
        text = text.replace(TIME_TOKEN, request.time_unit.word, 1)
        sql = sql.replace(TIME_TOKEN, request.time_unit.word, 1)

    if request.interval is not None:
        text = text.replace(INTERVAL_TOKEN, str(request.interval), 1)
        sql = sql.replace(INTERVAL_TOKEN, str(request.interval), 1)

    if DATE_TOKEN in template:
        lower, upper = date_range_bounds(request.start_date, request.end_date)
        text = text.replace(DATE_TOKEN, _date_clause(lower, upper, bind=False), 1)
        sql = sql.replace(DATE_TOKEN, _date_clause(lower, upper, bind=True), 1)
        if lower is not None:
            params["start_epoch"] = lower
        if upper is not None:
            params["end_epoch"] = upper

    leftover = tuple(token for token in _TOKEN_OPTIONS if token in text)
    if leftover:
        options = ", ".join(_TOKEN_OPTIONS[token] for token in leftover)
        raise MissingQueryArgumentError(f"查询 {request.query_name} 缺少参数：{options}", tokens=leftover)

    return SqlStatement(text=text, sql=sql, params=params)


def resolve_query(request: QueryRequest) -> SqlStatement:
    """
    把请求解析为 SqlStatement。

    逻辑：
        1. query_name 含 custom: -> 取第一个标记之后的内容并去掉首尾空白，原样返回；
        2. 否则按 QueryName 查模板，查不到 -> UnsupportedQueryError；
        3. 依次填充地址、时间单位、interval、日期区间。
    """
    query_name = request.query_name
    if CUSTOM_MARKER in query_name:
        custom_sql = query_name.split(CUSTOM_MARKER, 1)[1].strip()
        _logger.warning("使用 custom: 自定义查询，SQL 将不经任何校验直接发送到数据库。")
        return SqlStatement.raw(custom_sql, custom=True)

    name = _lookup_query_name(query_name)
    return fill_template(get_template(name), request)


def resolve(request: QueryRequest) -> str:
    """返回最终的字面 SQL 文本。"""
    return resolve_query(request).text
