"""软件包注册表

职责:
- 加载内置包表，并按可选 YAML 清单覆盖字段或追加新包
- 命令行 token 精确查找
- 依赖图静态校验（未知依赖、循环依赖、token 冲突）
- 依赖闭包的拓扑排序

清单格式:
    packages:
      openblas:
        version: "0.3.31"
        display_name: "OpenBLAS 0.3.31"
        archive: OpenBLAS-0.3.31.tar.gz
        src_dir: OpenBLAS-0.3.31
      mylib:                      # 新包必须给出 display_name / version / prefix
        display_name: "mylib 1.0"
        version: "1.0"
        tokens: [mylib]
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any

from modinstall.core.exceptions import ConfigError, PackageNotFoundError, ValidationError
from modinstall.core.models import PackageSpec
from modinstall.core.packages import BUILTIN_PACKAGES
from modinstall.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

_SPEC_FIELDS = {f.name for f in fields(PackageSpec)}
_TUPLE_FIELDS = {"tokens", "steps", "depends", "required_paths"}
_REQUIRED_NEW = ("display_name", "version", "prefix")


def _coerce(name: str, entry: dict[str, Any]) -> dict[str, Any]:
    """把清单条目转换为 PackageSpec 构造参数"""
    unknown = set(entry) - _SPEC_FIELDS
    if unknown:
        raise ValidationError(
            f"包 '{name}' 含未知字段: {', '.join(sorted(unknown))}",
        )
    result: dict[str, Any] = {}
    for key, value in entry.items():
        if key in _TUPLE_FIELDS:
            if isinstance(value, str):
                value = [value]
            result[key] = tuple(str(v) for v in value or ())
        elif key == "env":
            result[key] = {str(k): str(v) for k, v in (value or {}).items()}
        elif key == "in_place":
            result[key] = bool(value)
        else:
            result[key] = "" if value is None else str(value)
    result.pop("name", None)
    return result


class PackageRegistry:
    """软件包注册表 - 内置包表 + 清单覆盖"""

    def __init__(
        self,
        packages: Iterable[PackageSpec] = BUILTIN_PACKAGES,
        manifest: str | Path = "",
    ) -> None:
        self._packages: dict[str, PackageSpec] = {p.name: p for p in packages}
        if manifest:
            self._apply_manifest(Path(manifest).expanduser())
        self._tokens = self._build_token_index()

    def _apply_manifest(self, path: Path) -> None:
        if not path.exists():
            logger.warning("清单文件不存在: %s", path)
            return

        try:
            data = load_yaml(path)
        except (OSError, ValueError) as e:
            raise ConfigError(f"读取清单失败: {path} ({e})") from e
        for name, entry in (data.get("packages") or {}).items():
            if entry is None:
                continue
            if not isinstance(entry, dict):
                raise ValidationError(f"包 '{name}' 的清单条目必须是映射")
            kwargs = _coerce(name, entry)
            current = self._packages.get(name)
            if current is not None:
                self._packages[name] = replace(current, **kwargs)
                logger.info("清单覆盖: %s (%s)", name, ", ".join(sorted(kwargs)))
                continue
            missing = [k for k in _REQUIRED_NEW if not kwargs.get(k)]
            if missing:
                raise ValidationError(
                    f"新包 '{name}' 缺少必填字段: {', '.join(missing)}",
                )
            kwargs.setdefault("tokens", (name,))
            self._packages[name] = PackageSpec(name=name, **kwargs)
            logger.info("清单新增包: %s", name)

    def _build_token_index(self) -> dict[str, str]:
        index: dict[str, str] = {}
        for spec in self._packages.values():
            for token in spec.tokens:
                if token in index and index[token] != spec.name:
                    raise ValidationError(
                        f"token '{token}' 同时映射到 {index[token]} 和 {spec.name}",
                    )
                index[token] = spec.name
        return index

    # ---- 查询 ----

    def get(self, name: str) -> PackageSpec:
        """按规范包名获取描述"""
        spec = self._packages.get(name)
        if spec is None:
            raise PackageNotFoundError(
                f"包 '{name}' 不在注册表中。可用: {list(self._packages)}",
            )
        return spec

    def lookup(self, token: str) -> PackageSpec | None:
        """按命令行 token 精确查找（区分大小写），未知 token 返回 None"""
        name = self._tokens.get(token)
        return self._packages[name] if name else None

    def tokens(self) -> dict[str, str]:
        """token -> 规范包名"""
        return dict(self._tokens)

    def all(self) -> list[PackageSpec]:
        return list(self._packages.values())

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __len__(self) -> int:
        return len(self._packages)

    # ---- 依赖图 ----

    def validate(self) -> None:
        """校验依赖图: 依赖名必须已注册，且不存在循环"""
        errors: list[str] = []
        for spec in self._packages.values():
            for dep in spec.depends:
                if dep not in self._packages:
                    errors.append(f"{spec.name}: 未知依赖 '{dep}'")
                elif dep == spec.name:
                    errors.append(f"{spec.name}: 依赖自身")
        if errors:
            raise ValidationError("依赖图无效", details=errors)
        self.resolve_order(self._packages)

    def resolve_order(self, names: Iterable[str]) -> list[str]:
        """返回包含全部传递依赖的拓扑顺序（依赖在前，请求顺序尽量保持）"""
        order: list[str] = []
        state: dict[str, str] = {}  # visiting | done

        def visit(name: str, chain: list[str]) -> None:
            mark = state.get(name)
            if mark == "done":
                return
            if mark == "visiting":
                cycle = " -> ".join([*chain, name])
                raise ValidationError("存在循环依赖", details=[cycle])
            state[name] = "visiting"
            for dep in self.get(name).depends:
                visit(dep, [*chain, name])
            state[name] = "done"
            order.append(name)

        for name in names:
            visit(name, [])
        return order

    # ---- 序列化 ----

    def list_packages(self) -> list[dict[str, str]]:
        """格式化包列表用于查询"""
        return [
            {
                "name": p.name,
                "version": p.version,
                "display_name": p.display_name,
                "tokens": ",".join(p.tokens),
                "depends": ",".join(p.depends),
                "description": p.description,
            }
            for p in self._packages.values()
        ]

    def to_manifest(self) -> dict[str, Any]:
        """导出为清单格式（可直接作为 --manifest 输入）"""
        packages: dict[str, Any] = {}
        for spec in self._packages.values():
            entry: dict[str, Any] = {}
            for key, value in asdict(spec).items():
                if key == "name" or value in ("", (), {}, False, None):
                    continue
                entry[key] = list(value) if isinstance(value, tuple) else value
            packages[spec.name] = entry
        return {"packages": packages}
