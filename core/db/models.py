"""
core.db.models
---------------

连接层与业务层之间传递的数据结构：
- SqlStatement: 待执行的 SQL（字面文本 + 参数化文本 + 绑定参数）；
- QueryResult: 查询结果（行集合 + 元数据）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence


@dataclass(frozen=True)
class SqlStatement:
    """
    一条待执行的 SQL。

    字段说明：
    - text: 所有占位符均替换为字面值后的 SQL，用于日志与不支持参数绑定的后端；
    - sql: 结构化参数写成 %(name)s 形式的 SQL，供支持参数绑定的驱动使用；
    - params: 与 sql 对应的绑定参数；为空时驱动不做 % 解析；
    - custom: 是否来自 custom: 原样透传（不做任何校验或转义）。
    """

    text: str
    sql: str
    params: Mapping[str, Any] = field(default_factory=dict)
    custom: bool = False

    @classmethod
    def raw(cls, text: str, custom: bool = False) -> "SqlStatement":
        """构造无绑定参数的语句，sql 与 text 相同。"""
        return cls(text=text, sql=text, params={}, custom=custom)


@dataclass(frozen=True)
class ResultField:
    """结果列的元数据：列名与数据库类型 ID（HTTP 后端无类型信息时为 None）。"""

    name: str
    data_type_id: Optional[int] = None


@dataclass
class QueryResult:
    """
    查询结果。

    字段说明：
    - rows: 有序行列表，每行为 {列名: 值}；
    - fields: 列元数据，顺序与 SELECT 列一致；
    - command: 语句类型，如 "SELECT"；
    - row_count: 驱动报告的影响/返回行数。
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    fields: Sequence[ResultField] = ()
    command: Optional[str] = None
    row_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """转换为 JSON 报表使用的结构（行数组 + 元数据）。"""
        return {
            "command": self.command,
            "rowCount": self.row_count,
            "fields": [{"name": f.name, "dataTypeID": f.data_type_id} for f in self.fields],
            "rows": [dict(row) for row in self.rows],
        }
