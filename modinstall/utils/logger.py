"""modinstall 日志配置

同一次运行会依次编译十几个包，日志按包名打标签，便于在长输出中定位:
  - 文本格式: 时间 [级别] [包名] logger: 消息
  - JSON 格式: 额外的 "package" 字段
  - 可选同时写入日志文件（MODINSTALL_LOG_FILE），便于编译失败后回看

安装器通过 ``extra={"package": name}`` 传递包名，未携带时显示为 "-"。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

NO_PACKAGE = "-"
TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] [%(package)s] %(name)s: %(message)s"


def package_extra(name: str) -> dict[str, str]:
    """logger 调用的 extra 参数"""
    return {"package": name}


class PackageContextFilter(logging.Filter):
    """为未携带包名的记录补上占位值，保证文本格式可以引用 %(package)s"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "package", None):
            record.package = NO_PACKAGE
        return True


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志，每行一条记录

    字段: timestamp, level, logger, message, module, function, line，
    以及可选的 package / exception。
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        package = getattr(record, "package", NO_PACKAGE)
        if package and package != NO_PACKAGE:
            log_entry["package"] = package
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def _make_formatter(json_output: bool) -> logging.Formatter:
    return JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT)


def setup_logging(level: str = "INFO", json_output: bool = False, log_file: str = "") -> None:
    """配置根日志器

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        json_output: 为 True 时使用 JSON 格式，否则使用人类可读格式
        log_file: 非空时额外追加写入该文件（格式与 stderr 相同）

    stderr 之外，构建命令自身的输出仍直接走终端。
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in handlers:
        handler.addFilter(PackageContextFilter())
        handler.setFormatter(_make_formatter(json_output))
        root.addHandler(handler)


def reset_logging() -> None:
    """清理根日志器上所有已注册的 handlers，恢复到未配置状态"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
