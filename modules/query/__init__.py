"""
modules.query: 查询构造模块。

对外提供：
- DeploymentRegistry / load_registry: 部署登记表（链名、DapiServer 地址）；
- QueryRequest / parse_query_args: 命令行参数解析；
- resolve / resolve_query: 查询名称 -> SQL。
"""

from .registry import DAPI_SERVER, DeploymentRegistry, load_registry
from .request import (
    QueryRequest,
    TimeUnit,
    add_query_arguments,
    build_arg_parser,
    parse_query_args,
    request_from_namespace,
)
from .resolver import QueryName, resolve, resolve_query

__all__ = [
    "DAPI_SERVER",
    "DeploymentRegistry",
    "QueryName",
    "QueryRequest",
    "TimeUnit",
    "add_query_arguments",
    "build_arg_parser",
    "load_registry",
    "parse_query_args",
    "request_from_namespace",
    "resolve",
    "resolve_query",
]
