"""CLI 系统测试 fixture"""

from __future__ import annotations

from pathlib import Path

import pytest

from modinstall.utils import shell
from modinstall.utils.logger import reset_logging


@pytest.fixture(autouse=True)
def _isolated_logging():
    """main group 会重新配置根日志器，测试后恢复"""
    yield
    reset_logging()


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, fake_executor):
    """隔离的工作目录 + 配置文件 + 假执行器"""
    src = tmp_path / "src"
    src.mkdir()
    config = tmp_path / "modinstall.yml"
    config.write_text(
        f"install_loc: {tmp_path / 'modules'}\n"
        f"install_nwchem: {tmp_path / 'nwchem'}\n"
        f"profile: {tmp_path / '.bashrc'}\n"
        f"archive_dir: {src}\n"
        "jobs: 2\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(shell, "_default_executor", fake_executor)
    return {"config": str(config), "src": src, "root": tmp_path, "executor": fake_executor}
