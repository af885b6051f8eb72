"""
core.errors: 查询工具的异常体系。

所有异常均继承 QueryToolError，由 scripts 入口统一捕获、记录日志并映射为退出码 1。
"""

from __future__ import annotations


class QueryToolError(Exception):
    """查询工具所有已知错误的基类。"""


class ConfigError(QueryToolError):
    """配置文件缺失字段或取值非法。"""


class InvalidArgumentError(QueryToolError, ValueError):
    """命令行参数缺失或格式非法（如日期不是 DD-MM-YYYY）。"""


class DatabaseConnectionError(QueryToolError):
    """建立连接、TLS 握手、认证或健康检查失败。发生在任何查询执行之前。"""


class NotFoundError(QueryToolError, LookupError):
    """部署登记表中找不到链名、链 ID 或合约地址。"""


class UnsupportedQueryError(QueryToolError, ValueError):
    """查询名称既不是 custom: 形式，也不在模板表中。"""


class MissingQueryArgumentError(UnsupportedQueryError):
    """
    模板中仍有未填充的占位符，说明缺少对应的命令行参数。

    属性：
        tokens: 未填充的占位符列表，如 ["_ADDRESS_"]。
    """

    def __init__(self, message: str, tokens: tuple = ()) -> None:
        super().__init__(message)
        self.tokens = tuple(tokens)


class UnsupportedFormatError(QueryToolError, ValueError):
    """输出格式不是 json 或 html。"""


class QueryExecutionError(QueryToolError):
    """数据库拒绝执行 SQL（语法错误、权限不足等）。"""
