"""核心数据模型

所有核心数据类集中定义，registry / installer / dispatcher 统一从此处导入。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# =========================================================================
# 包描述
# =========================================================================


@dataclass(frozen=True)
class PackageSpec:
    """单个软件包的声明式描述

    模板字段（prefix / steps / env / url / source_dir / archive_dir /
    required_paths）使用 str.format 占位符:
      {prefix} {version} {jobs} {install_loc} {install_nwchem} {dep[<name>]}
    """

    name: str                  # 规范包名，如 openblas
    display_name: str          # 人类可读名称，同时作为 profile 标记名
    version: str
    tokens: tuple[str, ...] = ()   # 命令行 token，精确匹配、区分大小写
    archive: str = ""          # 源码包文件名
    src_dir: str = ""          # 源码包内顶层目录名
    rename_to: str = ""        # 解压后重命名的目录名
    source_dir: str = ""       # 已存在的源码目录（替代源码包）
    archive_dir: str = ""      # 源码包所在目录（空则使用配置的 archive_dir）
    prefix: str = ""           # 安装前缀模板
    build_subdir: str = ""     # 源码树内的构建子目录，如 build
    steps: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    depends: tuple[str, ...] = ()  # 需要已安装的前置包（规范包名）
    url: str = ""              # 源码包缺失时的下载地址
    in_place: bool = False     # 解压目录即安装前缀，不清理
    required_paths: tuple[str, ...] = ()  # 解压后必须存在的路径
    description: str = ""

    @property
    def uses_archive(self) -> bool:
        return not self.source_dir

    @property
    def tree_name(self) -> str:
        """解压（及重命名）后的源码目录名"""
        return self.rename_to or self.src_dir


# =========================================================================
# 执行结果
# =========================================================================


class InstallStatus(str, Enum):
    """单个包的安装状态"""
    SUCCESS = "success"
    FAILED = "failed"


class InstallStage(str, Enum):
    """失败或完成时所处的阶段"""
    ARCHIVE = "archive"
    DEPENDENCY = "dependency"
    EXTRACT = "extract"
    BUILD = "build"
    DONE = "done"


@dataclass
class InstallResult:
    """单个包的安装结果"""

    name: str
    status: InstallStatus = InstallStatus.FAILED
    stage: InstallStage = InstallStage.ARCHIVE
    message: str = ""
    display_name: str = ""
    prefix: str = ""
    duration: float = 0.0
    profile_updated: bool = False

    @property
    def success(self) -> bool:
        return self.status == InstallStatus.SUCCESS


@dataclass
class RunSummary:
    """一次分派执行的汇总"""

    results: list[InstallResult] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> list[InstallResult]:
        return [r for r in self.results if r.status == InstallStatus.SUCCESS]

    @property
    def failed(self) -> list[InstallResult]:
        return [r for r in self.results if r.status == InstallStatus.FAILED]

    @property
    def success(self) -> bool:
        return not self.failed

    def exit_code(self, strict: bool = False) -> int:
        """进程退出码: 默认始终 0（尽力安装全部请求）；strict 下有失败则为 1

        未知 token 只告警，不影响退出码。
        """
        if strict and not self.success:
            return 1
        return 0
