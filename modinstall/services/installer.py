"""通用包安装器

所有包共用同一套五步流程，差异全部来自声明式的 PackageSpec:

  1. 源码包检查: 源码包（或既有源码目录）必须存在；配置了 url 时先尝试下载
  2. 依赖检查:   depends 中每个包的前缀都必须已存在，逐个报告缺失项
  3. 解压:       解压到全新目录，必要时重命名为规范目录名
  4. 构建:       在（可能嵌套的）构建目录中交给 InstallRunner 执行完整命令
  5. 清理:       无论成败都删除解压出的源码树（原位安装的包除外）

第 1、2 步失败时不会创建任何目录。所有失败都以 InstallResult 返回，不抛出。
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from modinstall.core.exceptions import (
    ArchiveNotFoundError,
    DependencyError,
    ExtractionError,
    ModinstallError,
)
from modinstall.core.models import (
    InstallResult,
    InstallStage,
    InstallStatus,
    PackageSpec,
)
from modinstall.core.resolver import PackageResolver, ResolvedPackage
from modinstall.services.archive import extract_archive, remove_tree
from modinstall.services.runner import InstallRunner
from modinstall.utils.logger import package_extra
from modinstall.utils.net import download_file

logger = logging.getLogger(__name__)


class PackageInstaller:
    """按 PackageSpec 执行 检查 → 解压 → 构建 → 清理"""

    def __init__(self, resolver: PackageResolver, runner: InstallRunner) -> None:
        self.resolver = resolver
        self.runner = runner

    def install(self, name: str) -> InstallResult:
        """安装单个包（规范包名），返回结果"""
        spec = self.resolver.registry.get(name)
        start = time.monotonic()
        try:
            pkg = self.resolver.resolve(name)
            self._check_source(pkg)
            self._check_dependencies(spec)
            result = self._build(pkg)
        except ArchiveNotFoundError as e:
            result = self._failure(spec, InstallStage.ARCHIVE, str(e))
        except DependencyError as e:
            result = self._failure(spec, InstallStage.DEPENDENCY, str(e))
        except ExtractionError as e:
            logger.error("%s: %s", spec.display_name, e, extra=package_extra(spec.display_name))
            result = self._failure(spec, InstallStage.EXTRACT, str(e))
        except (ModinstallError, OSError) as e:
            logger.error("%s: %s", spec.display_name, e, extra=package_extra(spec.display_name))
            result = self._failure(spec, InstallStage.BUILD, str(e))
        result.name = spec.name
        result.display_name = spec.display_name
        if not result.duration:
            result.duration = time.monotonic() - start
        return result

    # ---- 1. 源码包 ----

    def _check_source(self, pkg: ResolvedPackage) -> None:
        spec = pkg.spec
        if pkg.archive_path is None:
            if not pkg.tree_path.is_dir():
                msg = f"源码目录 {pkg.tree_path} not found! 跳过 {spec.display_name}"
                logger.error(msg, extra=package_extra(spec.display_name))
                raise ArchiveNotFoundError(msg)
            return

        if not pkg.archive_path.is_file() and pkg.url:
            logger.info("%s 不存在，尝试下载: %s", pkg.archive_path.name, pkg.url)
            try:
                download_file(pkg.url, pkg.archive_path, context=spec.name)
            except ModinstallError as e:
                logger.error("%s", e)

        if not pkg.archive_path.is_file():
            msg = f"{spec.archive} not found! 跳过 {spec.display_name}"
            logger.error(msg, extra=package_extra(spec.display_name))
            raise ArchiveNotFoundError(msg)

    # ---- 2. 依赖 ----

    def _check_dependencies(self, spec: PackageSpec) -> None:
        missing = self.resolver.missing_dependencies(spec.name)
        for dep in missing:
            dep_spec = self.resolver.registry.get(dep)
            logger.error(
                "%s not installed (%s)! 跳过 %s",
                dep_spec.display_name, self.resolver.prefix(dep), spec.display_name,
                extra=package_extra(spec.display_name),
            )
        if missing:
            raise DependencyError(
                f"缺少前置依赖: {', '.join(missing)}，跳过 {spec.display_name}",
                missing=missing,
            )

    # ---- 3~5. 解压 / 构建 / 清理 ----

    def _build(self, pkg: ResolvedPackage) -> InstallResult:
        spec = pkg.spec
        extracted = False
        created_prefix = False
        backup = self._stash_in_place(pkg)
        result: InstallResult | None = None
        try:
            if pkg.archive_path is not None:
                extracted = True
                extract_archive(
                    pkg.archive_path, pkg.archive_path.parent,
                    spec.src_dir, spec.rename_to,
                )
                missing = [str(p) for p in pkg.required_paths if not p.exists()]
                if missing:
                    result = self._failure(
                        spec, InstallStage.EXTRACT,
                        f"解压结果不完整，缺少: {', '.join(missing)}",
                    )
                    return result

            if not pkg.prefix.exists():
                pkg.prefix.mkdir(parents=True)
                created_prefix = True
            pkg.build_dir.mkdir(parents=True, exist_ok=True)
            env = {**os.environ, **pkg.env}
            result = self.runner.run(
                spec.display_name, pkg.prefix, pkg.command,
                cwd=pkg.build_dir, env=env,
            )
            return result
        finally:
            succeeded = result is not None and result.success
            # 原位安装的包成功后源码树即安装目录，失败时同样清理
            if extracted and not (spec.in_place and succeeded):
                logger.info("清理源码目录: %s", pkg.tree_path)
                remove_tree(pkg.tree_path)
            if created_prefix and not succeeded:
                _remove_if_empty(pkg.prefix)
            if backup is not None:
                self._restore_in_place(pkg, backup, succeeded)

    # ---- 原位安装的旧版本 ----

    @staticmethod
    def _stash_in_place(pkg: ResolvedPackage) -> Path | None:
        """原位安装的包重装前把已有源码树（即安装前缀）移到 .bak，失败时可恢复"""
        if not (pkg.spec.in_place and pkg.tree_path.is_dir()):
            return None
        backup = pkg.tree_path.with_name(pkg.tree_path.name + ".bak")
        remove_tree(backup)
        logger.info("保留已有安装: %s -> %s", pkg.tree_path, backup)
        pkg.tree_path.rename(backup)
        return backup

    @staticmethod
    def _restore_in_place(pkg: ResolvedPackage, backup: Path, succeeded: bool) -> None:
        if succeeded:
            remove_tree(backup)
            return
        remove_tree(pkg.tree_path)
        logger.warning("重装失败，恢复原有安装: %s", pkg.tree_path)
        backup.rename(pkg.tree_path)

    @staticmethod
    def _failure(spec: PackageSpec, stage: InstallStage, message: str) -> InstallResult:
        return InstallResult(
            name=spec.name, display_name=spec.display_name,
            status=InstallStatus.FAILED, stage=stage, message=message,
        )


def _remove_if_empty(path: Path) -> None:
    """删除本次创建但构建失败后仍为空的前缀目录"""
    try:
        path.rmdir()
    except OSError:
        logger.debug("前缀目录非空，保留: %s", path)
