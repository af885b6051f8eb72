"""
scripts/run_query.py
--------------------

按 --query 选择预置 SQL 模板（或 custom: 自定义 SQL），填充链地址/时间窗口/日期区间，
在数据库上执行，并可按 --output 导出 JSON 或 HTML 报表到 exports/ 目录。

使用方式（示例）：
1. 在 configs/default_settings.yaml 中确认 registry.path 与 export.dir；
2. 如需改用 HTTP 查询 API 或调整 sslmode，复制 configs/db_local.example.yaml 为 configs/db_local.yaml；
3. 在项目根目录 .env 中设置数据库连接信息（POSTGRES_HOST、POSTGRES_PORT 等）；
4. 在项目根目录下运行：
   python -m scripts.run_query --query beacon-gas-cost --chain ethereum --output html
   python -m scripts.run_query --query beacons-gas-cost-all --start 01-01-2023 --end 31-12-2023 --output json
   python -m scripts.run_query --query "custom: SELECT count(*) FROM dapi_events;"
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from dotenv import load_dotenv

# 将项目根目录加入 sys.path，保证 from core.xxx 可被解析（无论从何处执行脚本）
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from core.db import ApiQueryConfig, ConnectionConfig, PostgresConfig, open_connection  # noqa: E402
from core.errors import ConfigError, QueryToolError  # noqa: E402
from core.logger import get_logger, setup_logging  # noqa: E402
from core.utils import load_yaml  # noqa: E402
from modules.query import build_arg_parser, load_registry, request_from_namespace, resolve_query  # noqa: E402
from modules.reporter import OutputFormat, write_report  # noqa: E402

_logger = get_logger(__name__)

_DEFAULT_CONFIG_DIR = _project_root / "configs"

_PG_ENV_DEFAULTS = {
    "host_env": "POSTGRES_HOST",
    "port_env": "POSTGRES_PORT",
    "user_env": "POSTGRES_USER",
    "password_env": "POSTGRES_PASSWORD",
    "database_env": "POSTGRES_DATABASE",
}


def _ensure_env_loaded(root: Path) -> None:
    """若项目根目录存在 .env，则加载其中的环境变量（不覆盖已有值）。"""
    env_path = root / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def _load_default_config(config_dir: Path) -> Dict[str, Any]:
    """
    读取 configs/default_settings.yaml。

    异常：
        ConfigError: 配置文件不存在时抛出。
    """
    config_path = config_dir / "default_settings.yaml"
    if not config_path.exists():
        raise ConfigError(f"配置文件不存在：{config_path}")
    return load_yaml(config_path)


def _load_db_config(config_dir: Path) -> Dict[str, Any]:
    """读取 configs/db_local.yaml；不存在时返回空字典，即使用 PostgreSQL + 默认环境变量名。"""
    config_path = config_dir / "db_local.yaml"
    if not config_path.exists():
        return {}
    return load_yaml(config_path)


def _resolve_path(value: str, base: Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else base / path


def _build_pg_config(db_cfg: Mapping[str, Any], environ: Mapping[str, str]) -> PostgresConfig:
    """
    根据 db_local.yaml 的 postgres 段与环境变量构造 PostgresConfig。

    异常：
        ConfigError: 必需的环境变量缺失或端口不是整数。
    """
    pg_cfg = db_cfg.get("postgres") or {}
    env_names = {key: pg_cfg.get(key, default) for key, default in _PG_ENV_DEFAULTS.items()}

    missing = [env_names[key] for key in ("host_env", "port_env") if not environ.get(env_names[key])]
    if missing:
        raise ConfigError(f"缺少必需的环境变量：{', '.join(missing)}。请在 .env 或终端中设置。")

    port_raw = environ[env_names["port_env"]]
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ConfigError(f"{env_names['port_env']} 必须为整数，当前为：{port_raw}") from exc

    return PostgresConfig(
        host=environ[env_names["host_env"]],
        port=port,
        user=environ.get(env_names["user_env"], ""),
        password=environ.get(env_names["password_env"], ""),
        database=environ.get(env_names["database_env"], ""),
        sslmode=str(pg_cfg.get("sslmode", "verify-full")),
        sslrootcert=pg_cfg.get("sslrootcert", "system") or None,
        connect_timeout=int(pg_cfg.get("connect_timeout", 30)),
    )


def _build_api_config(db_cfg: Mapping[str, Any]) -> ApiQueryConfig:
    """
    根据 db_local.yaml 的 api 段构造 ApiQueryConfig。

    异常：
        ConfigError: 缺少必要字段时抛出。
    """
    api_cfg = db_cfg.get("api") or {}

    query_url = api_cfg.get("query_url")
    token_env_var = api_cfg.get("token_env_var")
    if not query_url:
        raise ConfigError("db_local.yaml 中缺少必填字段：api.query_url")
    if not token_env_var:
        raise ConfigError("db_local.yaml 中缺少必填字段：api.token_env_var")

    return ApiQueryConfig(
        query_url=query_url,
        token_header=api_cfg.get("token_header", "X-Token"),
        token_env_var=token_env_var,
        timeout=int(api_cfg.get("timeout", 60)),
        extra_headers=api_cfg.get("extra_headers") or {},
        extra_body=api_cfg.get("extra_body") or {},
        sql_key=api_cfg.get("sql_key", "sql"),
    )


def build_connection_config(db_cfg: Mapping[str, Any], environ: Mapping[str, str]) -> ConnectionConfig:
    """按 db_cfg["backend"]（postgres/api，默认 postgres）选择连接配置。"""
    backend = str(db_cfg.get("backend", "postgres")).strip().lower()
    if backend == "postgres":
        return _build_pg_config(db_cfg, environ)
    if backend == "api":
        return _build_api_config(db_cfg)
    raise ConfigError(f"db_local.yaml 中 backend 必须为 postgres 或 api，当前为：{backend}")


def _build_parser() -> argparse.ArgumentParser:
    parser = build_arg_parser(prog="dapi-query")
    parser.add_argument("--config-dir", default=None, help="配置目录，默认为项目根目录下的 configs/")
    parser.add_argument("--log-level", default=None, help="日志级别，覆盖 default_settings.yaml")
    return parser


def run_query(argv: Sequence[str], environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    执行一次完整流程：解析参数 -> 解析 SQL -> 连接并查询 -> 输出报表。

    输入：
        argv: 不含程序名的命令行参数；
        environ: 读取连接信息的环境变量，默认为 os.environ（在加载 .env 之后）。
    输出：
        写入的报表路径；未传 --output 时为 None。
    异常：
        QueryToolError 的各子类，均视为本次运行失败。
    """
    ns = _build_parser().parse_args(list(argv))

    config_dir = Path(ns.config_dir) if ns.config_dir else _DEFAULT_CONFIG_DIR
    root = config_dir.resolve().parent
    _ensure_env_loaded(root)
    if environ is None:
        environ = os.environ

    settings = _load_default_config(config_dir)
    log_cfg = settings.get("logging") or {}
    setup_logging(ns.log_level or log_cfg.get("level"))

    registry_path = (settings.get("registry") or {}).get("path")
    if not registry_path:
        raise ConfigError("default_settings.yaml 中缺少必填字段：registry.path")
    export_dir = _resolve_path((settings.get("export") or {}).get("dir", "exports"), root)
    try:
        registry = load_registry(_resolve_path(registry_path, root))
    except (FileNotFoundError, ValueError) as exc:
        raise ConfigError(f"部署登记表加载失败：{exc!s}") from exc

    request = request_from_namespace(registry, ns)
    _logger.info("查询请求：%s", request)

    # 连接之前先校验输出格式与 SQL，避免无效请求占用连接
    if request.output_format is not None:
        OutputFormat.parse(request.output_format)
    statement = resolve_query(request)
    _logger.info("待执行 SQL：%s", statement.text)

    conn_cfg = build_connection_config(_load_db_config(config_dir), environ)

    print(f"[开始] 查询：{request.query_name}")
    with open_connection(conn_cfg) as conn:
        result = conn.execute(statement)

    _logger.info("查询结果行数：%s", result.row_count)
    if result.rows:
        _logger.info("查询结果首行：%s", json.dumps(result.rows[0], default=str, ensure_ascii=False))

    if request.output_format is None:
        print(f"[完成] 共 {result.row_count} 行，未指定 --output，不导出报表。")
        return None

    out_path = write_report(
        request.output_format,
        request.chain_name,
        result,
        registry,
        export_dir=export_dir,
    )
    print(f"[完成] 共 {result.row_count} 行，报表已导出：\n{out_path.resolve()}")
    return out_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """命令行入口：成功返回 0，任何失败记录错误并返回 1。"""
    setup_logging()
    try:
        run_query(sys.argv[1:] if argv is None else argv)
    except QueryToolError as exc:
        _logger.error("[失败] %s", exc)
        return 1
    except Exception:
        _logger.exception("[失败] 未预期的错误")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
