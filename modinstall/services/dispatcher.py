"""分派器：命令行 token → 安装器

单次遍历请求的 token 列表:
  - 精确匹配（区分大小写）查找包，未知 token 只告警并跳过
  - 某个包失败不影响后续 token，全部尝试后输出汇总
  - 构建开始前先做一次依赖静态检查（plan），提前报告缺失的前置包

退出码策略见 RunSummary.exit_code。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from modinstall.core.config import Config
from modinstall.core.exceptions import ModinstallError
from modinstall.core.models import InstallResult, RunSummary
from modinstall.core.registry import PackageRegistry
from modinstall.core.resolver import PackageResolver
from modinstall.services.installer import PackageInstaller
from modinstall.services.profile import ProfileUpdater
from modinstall.services.runner import InstallRunner
from modinstall.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

SUMMARY_LINE = "All requested installations completed (some may have failed)."


@dataclass
class PlanEntry:
    """单个包的执行计划"""

    name: str
    token: str
    installed: bool = False
    # 既未安装、也不会在本次运行中更早安装的依赖
    unmet: list[str] = field(default_factory=list)
    error: str = ""             # 模板展开失败的原因


@dataclass
class Plan:
    """一次运行的执行计划"""

    entries: list[PlanEntry] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    @property
    def ok(self) -> bool:
        return all(not e.unmet and not e.error for e in self.entries)


class Dispatcher:
    """把请求的 token 逐个交给通用安装器"""

    def __init__(
        self,
        config: Config,
        registry: PackageRegistry | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.config = config
        self.registry = registry or PackageRegistry(manifest=config.manifest)
        self.resolver = PackageResolver(self.registry, config)
        self.profile = ProfileUpdater(config.profile_path)
        self.runner = InstallRunner(
            self.profile, executor=executor, timeout=config.build_timeout,
        )
        self.installer = PackageInstaller(self.resolver, self.runner)

    # ---- 计划 ----

    def plan(self, tokens: list[str], *, with_deps: bool = False) -> Plan:
        """解析 token 并做依赖静态检查，不执行任何构建

        with_deps=True 时按拓扑顺序补齐尚未安装的传递依赖。
        单个包的模板无法展开时记录在 entry.error，不影响其他包。
        """
        plan = Plan()
        requested: list[tuple[str, str]] = []
        for token in tokens:
            spec = self.registry.lookup(token)
            if spec is None:
                plan.unknown.append(token)
                continue
            requested.append((spec.name, token))

        if with_deps:
            token_of = dict(requested)
            order = self.registry.resolve_order(name for name, _ in requested)
            requested = [
                (name, token_of.get(name, name)) for name in order
                if name in token_of or not self._installed(name)
            ]

        scheduled: set[str] = set()
        for name, token in requested:
            spec = self.registry.get(name)
            entry = PlanEntry(name=name, token=token, installed=self._installed(name))
            try:
                self.resolver.resolve(name)
            except ModinstallError as e:
                entry.error = str(e)
            entry.unmet = [
                d for d in spec.depends
                if d not in scheduled and not self._installed(d)
            ]
            plan.entries.append(entry)
            scheduled.add(name)
        return plan

    def _installed(self, name: str) -> bool:
        """模板无效的包按未安装处理，错误留给安装阶段报告"""
        try:
            return self.resolver.is_installed(name)
        except ModinstallError:
            return False

    # ---- 执行 ----

    def dispatch(self, tokens: list[str], *, with_deps: bool = False) -> RunSummary:
        """按顺序尝试安装全部请求的包，失败继续"""
        plan = self.plan(tokens, with_deps=with_deps)
        summary = RunSummary(unknown=list(plan.unknown))

        for token in plan.unknown:
            logger.warning("未知的包: %s", token)
        for entry in plan.entries:
            if entry.error:
                logger.warning("%s: %s", entry.token, entry.error)
            if entry.unmet:
                logger.warning(
                    "%s 的依赖尚未安装且未在本次请求中: %s",
                    entry.token, ", ".join(entry.unmet),
                )

        for entry in plan.entries:
            result = self.install_one(entry.name)
            summary.results.append(result)
            if not result.success:
                logger.warning("%s 失败，继续后续包...", entry.token)

        logger.info(
            "%s 成功 %d，失败 %d，未知 %d",
            SUMMARY_LINE, len(summary.succeeded), len(summary.failed), len(summary.unknown),
        )
        if summary.succeeded:
            logger.info("新模块已写入 %s，执行: source %s", self.profile.profile_path,
                        self.profile.profile_path)
        return summary

    def install_one(self, name: str) -> InstallResult:
        return self.installer.install(name)
