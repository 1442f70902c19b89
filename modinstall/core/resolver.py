"""包描述解析器

职责:
- 计算包的安装前缀（不触发任何构建）
- 检查前缀是否已存在于磁盘
- 把描述中的模板字段展开为可执行的具体路径与命令
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modinstall.core.config import Config
from modinstall.core.exceptions import ValidationError
from modinstall.core.models import PackageSpec
from modinstall.core.registry import PackageRegistry

logger = logging.getLogger(__name__)


@dataclass
class ResolvedPackage:
    """模板展开后的包描述"""

    spec: PackageSpec
    prefix: Path
    archive_path: Path | None     # source_dir 类包为 None
    tree_path: Path               # 解压后（或既有）的源码目录
    build_dir: Path               # 构建命令的工作目录
    command: str
    env: dict[str, str] = field(default_factory=dict)
    url: str = ""
    required_paths: list[Path] = field(default_factory=list)


class PackageResolver:
    """包描述解析器 - 仅做路径计算与模板展开"""

    def __init__(self, registry: PackageRegistry, config: Config) -> None:
        self.registry = registry
        self.config = config

    def prefix(self, name: str) -> Path:
        """计算包的安装前缀"""
        spec = self.registry.get(name)
        return Path(self._format(spec.prefix, spec, self._base_vars(spec))).expanduser()

    def is_installed(self, name: str) -> bool:
        """前缀目录存在即视为已安装"""
        return self.prefix(name).is_dir()

    def missing_dependencies(self, name: str) -> list[str]:
        """返回前缀尚不存在的直接依赖"""
        return [d for d in self.registry.get(name).depends if not self.is_installed(d)]

    def resolve(self, name: str) -> ResolvedPackage:
        """展开包的全部模板字段"""
        spec = self.registry.get(name)
        vars_ = self._base_vars(spec)
        prefix = Path(self._format(spec.prefix, spec, vars_)).expanduser()
        vars_["prefix"] = str(prefix)

        if spec.uses_archive:
            archive_dir = (
                Path(self._format(spec.archive_dir, spec, vars_)).expanduser()
                if spec.archive_dir else self.config.archive_path
            )
            archive_path: Path | None = archive_dir / spec.archive
            tree_path = archive_dir / spec.tree_name
        else:
            archive_path = None
            tree_path = Path(self._format(spec.source_dir, spec, vars_)).expanduser()

        build_dir = tree_path / spec.build_subdir if spec.build_subdir else tree_path
        command = " && ".join(self._format(s, spec, vars_) for s in spec.steps)
        env = {k: self._format(v, spec, vars_) for k, v in spec.env.items()}

        return ResolvedPackage(
            spec=spec,
            prefix=prefix,
            archive_path=archive_path,
            tree_path=tree_path,
            build_dir=build_dir,
            command=command,
            env=env,
            url=self._format(spec.url, spec, vars_) if spec.url else "",
            required_paths=[
                Path(self._format(p, spec, vars_)) for p in spec.required_paths
            ],
        )

    def check_templates(self) -> None:
        """展开全部包的模板，收集所有无效模板后统一报错"""
        errors: list[str] = []
        for spec in self.registry.all():
            try:
                self.resolve(spec.name)
            except ValidationError as e:
                errors.append(str(e))
        if errors:
            raise ValidationError("包模板无效", details=errors)

    # ---- 内部 ----

    def _base_vars(self, spec: PackageSpec) -> dict[str, Any]:
        vars_ = self.config.template_vars()
        vars_["version"] = spec.version
        vars_["dep"] = _DependencyPrefixes(self)
        return vars_

    @staticmethod
    def _format(template: str, spec: PackageSpec, vars_: dict[str, Any]) -> str:
        try:
            return template.format_map(vars_)
        except (KeyError, IndexError, ValueError) as e:
            raise ValidationError(
                f"包 '{spec.name}' 模板无效: {template!r} ({e})",
            ) from e


class _DependencyPrefixes:
    """模板中 {dep[<name>]} 的惰性取值"""

    def __init__(self, resolver: PackageResolver) -> None:
        self._resolver = resolver

    def __getitem__(self, name: str) -> str:
        if name not in self._resolver.registry:
            raise KeyError(name)
        return str(self._resolver.prefix(name))
