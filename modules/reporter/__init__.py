"""
modules.reporter: 报表输出模块。

当前提供：
- write_report: 将查询结果写为 JSON 或 HTML 报表文件；
- render_json / render_html: 仅生成文本，不落盘。
"""

from .query_reporter import OutputFormat, format_wei, render_html, render_json, write_report

__all__ = ["OutputFormat", "format_wei", "render_html", "render_json", "write_report"]
