"""查询命令：list, show, status, manifest, doctor"""

from __future__ import annotations

import click
import yaml

from modinstall.cli.common import build_config, build_registry, config_options
from modinstall.core.exceptions import ExecutionError, ModinstallError
from modinstall.core.resolver import PackageResolver
from modinstall.services.profile import ProfileUpdater
from modinstall.utils.shell import run_cmd
from modinstall.utils.yaml_io import save_yaml

# 构建各包所需的外部工具
BUILD_TOOLS: tuple[str, ...] = (
    "bash", "make", "cmake", "gcc", "g++", "gfortran", "mpicc", "mpicxx", "mpif90",
)


def register(main: click.Group) -> None:
    """注册查询相关命令"""
    main.add_command(list_packages)
    main.add_command(show)
    main.add_command(status)
    main.add_command(manifest_cmd)
    main.add_command(doctor)


@click.command(name="list")
@config_options
def list_packages(
    config_path: str, manifest: str | None, profile: str | None, install_loc: str | None,
) -> None:
    """列出所有已注册的包"""
    cfg = build_config(config_path, manifest=manifest, profile=profile, install_loc=install_loc)
    registry = build_registry(cfg)
    for p in registry.list_packages():
        deps = f"  依赖: {p['depends']}" if p["depends"] else ""
        click.echo(f"  {p['tokens']:16s} {p['name']:10s} {p['version']:8s} {p['description']}{deps}")


@click.command()
@click.argument("token")
@config_options
def show(
    token: str, config_path: str, manifest: str | None,
    profile: str | None, install_loc: str | None,
) -> None:
    """显示包展开后的前缀、目录与构建命令"""
    cfg = build_config(config_path, manifest=manifest, profile=profile, install_loc=install_loc)
    registry = build_registry(cfg)
    spec = registry.lookup(token)
    if spec is None:
        raise click.ClickException(f"未知的包: {token}")
    try:
        pkg = PackageResolver(registry, cfg).resolve(spec.name)
    except ModinstallError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"名称:     {spec.display_name}")
    click.echo(f"前缀:     {pkg.prefix}")
    if pkg.archive_path is not None:
        click.echo(f"源码包:   {pkg.archive_path}")
    click.echo(f"源码目录: {pkg.tree_path}")
    click.echo(f"构建目录: {pkg.build_dir}")
    if spec.depends:
        click.echo(f"依赖:     {', '.join(spec.depends)}")
    for k, v in pkg.env.items():
        click.echo(f"环境:     {k}={v}")
    click.echo("命令:")
    for step in pkg.command.split(" && "):
        click.echo(f"  {step}")


@click.command()
@config_options
def status(
    config_path: str, manifest: str | None, profile: str | None, install_loc: str | None,
) -> None:
    """查看各包前缀是否存在、profile 是否已有条目"""
    cfg = build_config(config_path, manifest=manifest, profile=profile, install_loc=install_loc)
    registry = build_registry(cfg)
    resolver = PackageResolver(registry, cfg)
    entries = set(ProfileUpdater(cfg.profile_path).entries())
    for spec in registry.all():
        installed = "已安装" if resolver.is_installed(spec.name) else "-"
        in_profile = "profile" if spec.display_name in entries else "-"
        click.echo(f"  {spec.name:10s} {installed:6s} {in_profile:8s} {resolver.prefix(spec.name)}")


@click.command(name="manifest")
@config_options
@click.option("--output", "-o", default=None, help="输出文件（不指定则打印到终端）")
def manifest_cmd(
    config_path: str, manifest: str | None, profile: str | None,
    install_loc: str | None, output: str | None,
) -> None:
    """导出当前生效的包表（可修改后作为 --manifest 使用）"""
    cfg = build_config(config_path, manifest=manifest, profile=profile, install_loc=install_loc)
    data = build_registry(cfg).to_manifest()
    if output:
        save_yaml(output, data)
        click.echo(f"已导出: {output}")
    else:
        click.echo(yaml.safe_dump(data, allow_unicode=True, sort_keys=False))


@click.command()
def doctor() -> None:
    """检查构建所需的外部工具是否在 PATH 上"""
    missing = 0
    for tool in BUILD_TOOLS:
        try:
            r = run_cmd(f"command -v {tool}", label=tool)
            click.echo(f"  [OK  ] {tool:10s} {r.stdout.strip()}")
        except ExecutionError:
            missing += 1
            click.echo(f"  [MISS] {tool}")
    if missing:
        click.echo(f"缺少 {missing} 个工具，相关包的构建会失败。")
