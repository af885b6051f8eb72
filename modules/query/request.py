"""
modules.query.request: 命令行参数 -> QueryRequest。

对外提供：
- TimeUnit: 时间单位枚举（d/m/w/y -> DAY/MONTH/WEEK/YEAR）；
- QueryRequest: 单次运行的查询请求；
- add_query_arguments / build_arg_parser / parse_query_args: 参数解析入口。
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import NoReturn, Optional, Sequence

from core.errors import InvalidArgumentError

from .registry import DeploymentRegistry

DATE_FORMAT = "%d-%m-%Y"


class TimeUnit(Enum):
    """命令行时间单位缩写与 SQL INTERVAL 单位词的对应关系。"""

    DAY = "d"
    MONTH = "m"
    WEEK = "w"
    YEAR = "y"

    @property
    def word(self) -> str:
        return self.name

    @classmethod
    def from_arg(cls, value: str) -> "TimeUnit":
        try:
            return cls(value)
        except ValueError as exc:
            choices = "/".join(unit.value for unit in cls)
            raise argparse.ArgumentTypeError(f"时间单位必须为 {choices}，当前为：{value}") from exc


@dataclass(frozen=True)
class QueryRequest:
    """
    单次运行的查询请求。

    字段说明：
    - query_name: 查询名称，或 "custom: <SQL>"；
    - chain_name / resolved_address: 链名及其 DapiServer 地址，二者同时存在或同时为空；
    - time_unit / interval: 时间窗口，如 7 DAY；
    - start_date / end_date: 日期区间（均含当天）；
    - output_format: 原样保留的输出格式字符串，由 reporter 校验。
    """

    query_name: str
    chain_name: Optional[str] = None
    resolved_address: Optional[str] = None
    time_unit: Optional[TimeUnit] = None
    interval: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    output_format: Optional[str] = None

    @classmethod
    def build(
        cls,
        registry: DeploymentRegistry,
        query_name: str,
        chain_name: Optional[str] = None,
        **options,
    ) -> "QueryRequest":
        """
        构造请求；给出 chain_name 时立即通过登记表解析地址。

        异常：
            NotFoundError: 链名无法解析为地址。
        """
        address = registry.resolve_address(chain_name) if chain_name else None
        return cls(query_name=query_name, chain_name=chain_name, resolved_address=address, **options)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"interval 必须为正整数，当前为：{value}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"interval 必须为正整数，当前为：{value}")
    return number


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"日期格式必须为 DD-MM-YYYY，当前为：{value}") from exc


class _RaisingArgumentParser(argparse.ArgumentParser):
    """参数错误时抛出 InvalidArgumentError，而不是直接 sys.exit(2)。"""

    def error(self, message: str) -> NoReturn:
        raise InvalidArgumentError(f"命令行参数错误：{message}")


def add_query_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """向 parser 注册查询相关参数，供脚本在此基础上追加自己的选项。"""
    parser.add_argument(
        "--query",
        required=True,
        help='查询名称，或 "custom: <SQL>" 直接执行自定义 SQL（不做任何校验）',
    )
    parser.add_argument("--chain", help="链名，如 ethereum；用于解析 DapiServer 地址")
    parser.add_argument("--time", type=TimeUnit.from_arg, help="时间单位：d/m/w/y")
    parser.add_argument("--interval", type=_positive_int, help="时间窗口长度（正整数）")
    parser.add_argument("--start", type=_parse_date, help="起始日期 DD-MM-YYYY（含）")
    parser.add_argument("--end", type=_parse_date, help="结束日期 DD-MM-YYYY（含）")
    parser.add_argument("--output", help="输出格式：json/html；不传则只打印结果")
    return parser


def build_arg_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = _RaisingArgumentParser(prog=prog, description="按预置模板查询 dAPI 数据并导出报表。")
    return add_query_arguments(parser)


def request_from_namespace(registry: DeploymentRegistry, ns: argparse.Namespace) -> QueryRequest:
    return QueryRequest.build(
        registry,
        query_name=ns.query,
        chain_name=ns.chain or None,
        time_unit=ns.time,
        interval=ns.interval,
        start_date=ns.start,
        end_date=ns.end,
        output_format=ns.output or None,
    )


def parse_query_args(registry: DeploymentRegistry, argv: Sequence[str]) -> QueryRequest:
    """
    解析命令行参数为 QueryRequest。

    输入：
        registry: 部署登记表；
        argv: 不含程序名的参数列表，如 ["--query", "beacon-events-full", "--chain", "ethereum"]。
    输出：
        QueryRequest。
    异常：
        InvalidArgumentError: 缺少 --query 或参数格式非法；
        NotFoundError: --chain 无法解析为地址。
    """
    ns = build_arg_parser().parse_args(list(argv))
    return request_from_namespace(registry, ns)
