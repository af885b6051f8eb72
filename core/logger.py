"""
core.logger: 统一日志入口。

约定：
- 各模块通过 get_logger(__name__) 获取 logger；
- 仅由 scripts 在启动时调用一次 setup_logging，core/modules 不自行配置 handler。
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_ROOT_NAME = "dapi_query"


def get_logger(name: str) -> logging.Logger:
    """
    获取挂在统一根 logger 下的子 logger。

    输入：
        name: 通常为调用方模块的 __name__。
    输出：
        logging.Logger 实例，名称形如 "dapi_query.core.db.pg_client"。
    """
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


def setup_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    配置根 logger：单个输出到 stderr 的 StreamHandler。

    输入：
        level: 日志级别，可为 "INFO"/"DEBUG" 等字符串或 logging 常量；None 时为 INFO。
    输出：
        配置完成的根 logger。
    异常：
        ValueError: 级别字符串无法识别时抛出。
    """
    if level is None:
        level = logging.INFO
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"无法识别的日志级别：{level}")
        level = resolved

    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(level)
    # 重复调用时不叠加 handler
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
    return root
