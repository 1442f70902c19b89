"""modinstall 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from modinstall import __version__
from modinstall.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """modinstall - 科学计算软件栈本地编译安装工具"""
    setup_logging(
        level=os.getenv("MODINSTALL_LOG_LEVEL", "INFO"),
        json_output=os.getenv("MODINSTALL_LOG_JSON", "") == "1",
        log_file=os.getenv("MODINSTALL_LOG_FILE", ""),
    )


# 注册各领域子命令
from modinstall.cli.cmd_install import register as _reg_install  # noqa: E402
from modinstall.cli.cmd_query import register as _reg_query  # noqa: E402

_reg_install(main)
_reg_query(main)
