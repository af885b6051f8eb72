from __future__ import annotations

import html
import json
import time
from datetime import date, datetime, timedelta
from datetime import time as dtime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from eth_utils import from_wei

from core.db import QueryResult
from core.errors import UnsupportedFormatError
from core.logger import get_logger
from modules.query.registry import DeploymentRegistry

_logger = get_logger(__name__)

DEFAULT_EXPORT_DIR = Path("exports")
DEFAULT_REPORT_NAME = "report"
UNKNOWN_CHAIN_NAME = "unknown"


class OutputFormat(Enum):
    """支持的报表格式。"""

    JSON = "json"
    HTML = "html"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OutputFormat":
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormatError(
                f"不支持的输出格式：{value}。可选：{', '.join(f.value for f in cls)}"
            ) from None


def _json_default(obj: Any) -> Any:
    """json.dumps 的兜底转换：Decimal 转字符串以保留精度，日期/时间转 ISO 格式，interval 转 "1 day, 2:00:00" 形式；其余类型取 str()。"""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date, dtime)):
        return obj.isoformat()
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, timedelta):
        return str(obj)
    _logger.debug("按 str() 序列化 %s 类型的值", type(obj).__name__)
    return str(obj)


def _format_value(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return json.dumps(value, default=_json_default, ensure_ascii=False)
    return str(value)


def format_wei(value: Any) -> str:
    """
    将最小单位（wei）的大整数转换为以 ether 计的十进制字符串，如 "1500000000000000000" -> "1.5"。

    无法按整数解析的值（如 NULL）原样返回其文本形式。
    """
    try:
        ether = Decimal(from_wei(int(Decimal(str(value))), "ether"))
    except (InvalidOperation, ValueError, OverflowError):
        _logger.warning("totalfees 无法按 wei 整数换算，按原值输出：%r", value)
        return _format_value(value)
    return format(ether, "f")


def _table_row(key: str, value: str) -> str:
    return f"<tr><td>{html.escape(key, quote=False)}</td><td>{html.escape(value, quote=False)}</td></tr>"


def render_html(result: QueryResult, registry: DeploymentRegistry) -> str:
    """
    每行结果渲染为一个 <table>，每列一个 <tr>。

    特殊列：
    - chain: 额外输出一行 name -> 链名（登记表中查不到时为 unknown）；
    - totalfees: 以 ether 为单位输出，而不是 wei 原值。
    """
    tables: List[str] = []
    for row in result.rows:
        cells: List[str] = []
        for key, value in row.items():
            formatted = _format_value(value)
            if key == "chain":
                chain_name = registry.lookup_chain_name(formatted)
                if chain_name is None:
                    _logger.warning("登记表中没有链 ID %s 对应的链名。", formatted)
                cells.append(_table_row("name", chain_name or UNKNOWN_CHAIN_NAME))
            if key == "totalfees":
                cells.append(_table_row(key, format_wei(value)))
                continue
            cells.append(_table_row(key, formatted))
        tables.append(f"<table>{''.join(cells)}</table>")
    return "\n".join(tables)


def render_json(result: QueryResult) -> str:
    """序列化完整结果（行 + 元数据），2 空格缩进。"""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=_json_default)


def write_report(
    fmt: Optional[str],
    chain_name: Optional[str],
    result: QueryResult,
    registry: DeploymentRegistry,
    export_dir: Union[str, Path] = DEFAULT_EXPORT_DIR,
    timestamp: Optional[int] = None,
) -> Path:
    """
    把查询结果写为报表文件。

    输入：
        fmt: "json" 或 "html"；
        chain_name: 链名，用于 JSON 文件名；为空时以 report 代替；
        result: 查询结果；
        registry: 部署登记表，HTML 渲染 chain 列时使用；
        export_dir: 输出目录，不存在时递归创建；
        timestamp: 毫秒时间戳，用于文件名；默认取当前时间。
    输出：
        写入的文件路径。
    异常：
        UnsupportedFormatError: 格式不受支持（须为小写 json 或 html），此时不会创建目录或写文件。
    """
    output_format = OutputFormat.parse(fmt)

    if timestamp is None:
        timestamp = int(time.time() * 1000)

    # 先渲染再建目录，渲染失败时不留下空目录
    if output_format is OutputFormat.JSON:
        file_name = f"{chain_name or DEFAULT_REPORT_NAME}_{timestamp}.json"
        content = render_json(result)
    elif output_format is OutputFormat.HTML:
        file_name = f"{DEFAULT_REPORT_NAME}_{timestamp}.html"
        content = render_html(result, registry)
    else:  # pragma: no cover - 新增格式时需在此补充分支
        raise UnsupportedFormatError(f"未实现的输出格式：{output_format.value}")

    out_dir = Path(export_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / file_name
    out_path.write_text(content, encoding="utf-8")
    _logger.info("报表已写入：%s", out_path)
    return out_path
