"""测试共享 fixture：假执行器 + 源码包工厂

真实编译动辄数十分钟，测试中一律注入 FakeExecutor:
  - 记录每次调用的命令、工作目录、环境变量
  - 按命令子串决定返回码，模拟构建失败
源码包用 tarfile 在 tmp_path 中现场生成。
"""

from __future__ import annotations

import io
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from modinstall.core.config import ENV_OVERRIDES, Config
from modinstall.utils.shell import CommandResult


@dataclass
class FakeExecutor:
    """记录调用的命令执行器，fail_when 中任一子串出现在命令里即返回 rc=2"""

    fail_when: tuple[str, ...] = ()
    calls: list[dict] = field(default_factory=list)

    def execute(
        self,
        cmd: str,
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        capture: bool = True,
    ) -> CommandResult:
        self.calls.append({
            "cmd": cmd, "cwd": cwd, "env": env or {},
            "cwd_exists": Path(cwd).is_dir(),
        })
        if any(s in cmd for s in self.fail_when):
            return CommandResult(returncode=2, stderr="build error")
        return CommandResult(returncode=0)


def make_archive(
    directory: Path, filename: str, top: str,
    files: dict[str, str] | None = None,
) -> Path:
    """生成顶层目录为 top 的 tar.gz / tar.bz2 源码包"""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    mode = "w:bz2" if filename.endswith(".bz2") else "w:gz"
    contents = files or {"configure": "#!/bin/sh\nexit 0\n"}
    with tarfile.open(path, mode) as tf:
        root = tarfile.TarInfo(top)
        root.type = tarfile.DIRTYPE
        root.mode = 0o755
        tf.addfile(root)
        for rel, text in contents.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(f"{top}/{rel}")
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """屏蔽宿主机上的 INSTALL_LOC 等环境变量"""
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def cfg(tmp_path: Path) -> Config:
    src = tmp_path / "src"
    src.mkdir()
    return Config(
        install_loc=str(tmp_path / "modules"),
        install_nwchem=str(tmp_path / "nwchem"),
        profile=str(tmp_path / "home" / ".bashrc"),
        archive_dir=str(src),
        jobs=2,
    )


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def archive_factory():
    return make_archive
