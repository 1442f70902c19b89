"""安装执行器：外部构建失败的唯一隔离边界

执行一条完整的 configure/build/install 命令:
  - 退出码 0: 记录成功，更新 profile（profile 写入失败只告警，仍视为成功）
  - 非 0:     记录失败，完全跳过 profile，保证 profile 不会引用未装好的前缀
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from modinstall.core.models import InstallResult, InstallStage, InstallStatus
from modinstall.services.profile import ProfileUpdater
from modinstall.utils.logger import package_extra
from modinstall.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)


class InstallRunner:
    """执行单个包的构建命令并按结果决定是否更新 profile"""

    def __init__(
        self,
        profile: ProfileUpdater,
        executor: CommandExecutor | None = None,
        timeout: int | None = None,
    ) -> None:
        self.profile = profile
        self._executor = executor
        self.timeout = timeout or None

    @property
    def executor(self) -> CommandExecutor:
        return self._executor if self._executor is not None else get_executor()

    def run(
        self, name: str, prefix: Path, command: str, *,
        cwd: Path, env: dict[str, str] | None = None,
    ) -> InstallResult:
        """执行 command，返回 InstallResult（不抛出构建失败）"""
        extra = package_extra(name)
        logger.info("================ 安装: %s ================", name, extra=extra)
        logger.info("安装前缀: %s", prefix, extra=extra)
        logger.info("执行: %s", command, extra=extra)

        start = time.monotonic()
        try:
            r = self.executor.execute(
                command, cwd=str(cwd), env=env, timeout=self.timeout, capture=False,
            )
        except OSError as e:
            logger.error("%s: 无法启动构建命令: %s", name, e, extra=extra)
            return InstallResult(
                name=name, display_name=name, status=InstallStatus.FAILED, stage=InstallStage.BUILD,
                message=f"无法启动构建命令: {e}", prefix=str(prefix),
                duration=time.monotonic() - start,
            )
        duration = time.monotonic() - start

        if not r.success:
            reason = "超时" if r.timed_out else f"rc={r.returncode}"
            logger.error("%s 安装失败 (%s)，不修改 %s", name, reason,
                         self.profile.profile_path, extra=extra)
            return InstallResult(
                name=name, display_name=name, status=InstallStatus.FAILED, stage=InstallStage.BUILD,
                message=f"构建失败 ({reason})", prefix=str(prefix), duration=duration,
            )

        logger.info("%s: 构建/安装成功 (%.1fs)", name, duration, extra=extra)
        updated = self.profile.update(name, prefix)
        if not updated:
            logger.warning("%s 的 profile 条目写入失败（不影响安装结果）", name, extra=extra)
        return InstallResult(
            name=name, display_name=name, status=InstallStatus.SUCCESS, stage=InstallStage.DONE,
            message="安装成功", prefix=str(prefix), duration=duration,
            profile_updated=updated,
        )
