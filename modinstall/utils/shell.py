"""Shell 命令执行工具：统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
构建命令是带 && / export / cd 的完整 shell 片段，统一交给 bash -c 执行。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from modinstall.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)

SHELL = "bash"


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议：抽象子进程调用

    测试时注入 mock 实现，无需 patch subprocess，也无需真实编译。
    """

    def execute(
        self,
        cmd: str,
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """执行 shell 命令片段并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地 bash 执行器
# =========================================================================

class LocalExecutor:
    """本地 bash 命令执行器（默认实现）

    capture=False 时子进程直接继承终端输出，编译日志实时可见，
    避免把 GB 级编译输出缓存在内存中。
    """

    def execute(
        self,
        cmd: str,
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        capture: bool = True,
    ) -> CommandResult:
        try:
            r = subprocess.run(
                [SHELL, "-c", cmd], capture_output=capture, text=True,
                cwd=cwd, env=env, check=False, timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error("命令超时 (%ss): %s", timeout, cmd[:200])
            return CommandResult(returncode=-1, timed_out=True)
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout or "",
            stderr=r.stderr or "",
        )


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


# =========================================================================
# 便捷函数
# =========================================================================

def run_cmd(
    cmd: str, *, cwd: str = ".",
    env: dict[str, str] | None = None,
    label: str = "cmd",
) -> CommandResult:
    """执行 shell 命令并捕获输出，失败抛 ExecutionError

    Args:
        cmd: 命令字符串
        cwd: 工作目录
        env: 环境变量（不传则继承当前进程）
        label: 日志标签
    """
    logger.info("  %s: %s (cwd=%s)", label, cmd, cwd)
    r = get_executor().execute(cmd, cwd=cwd, env=env)
    if not r.success:
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}")
    return r
