"""CLI 共享选项与配置装配"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import click

from modinstall.core.config import DEFAULT_CONFIG_FILE, Config, load_config
from modinstall.core.exceptions import ModinstallError, ValidationError
from modinstall.core.registry import PackageRegistry
from modinstall.core.resolver import PackageResolver

F = TypeVar("F", bound=Callable[..., Any])


def config_options(func: F) -> F:
    """--config / --manifest / --profile / --install-loc 公共选项"""
    func = click.option("--install-loc", default=None, help="安装根目录（覆盖 INSTALL_LOC）")(func)
    func = click.option("--profile", default=None, help="shell profile 路径（默认 ~/.bashrc）")(func)
    func = click.option("--manifest", default=None, help="包清单覆盖文件 (YAML)")(func)
    func = click.option("--config", "-c", "config_path", default=DEFAULT_CONFIG_FILE,
                        help="配置文件路径")(func)
    return func


def build_config(
    config_path: str, *, manifest: str | None = None,
    profile: str | None = None, install_loc: str | None = None,
    **overrides: Any,
) -> Config:
    """配置文件 -> 环境变量 -> CLI 选项"""
    try:
        cfg = load_config(config_path)
    except ModinstallError as e:
        raise click.ClickException(str(e)) from e
    return cfg.with_overrides(
        manifest=manifest, profile=profile, install_loc=install_loc, **overrides,
    )


def build_registry(cfg: Config) -> PackageRegistry:
    """加载注册表并校验依赖图与模板，错误转为 CLI 友好提示"""
    try:
        registry = PackageRegistry(manifest=cfg.manifest)
        registry.validate()
        PackageResolver(registry, cfg).check_templates()
    except ValidationError as e:
        details = "".join(f"\n  - {d}" for d in e.details)
        raise click.ClickException(f"{e}{details}") from e
    except ModinstallError as e:
        raise click.ClickException(str(e)) from e
    return registry
