"""安装命令：install, plan"""

from __future__ import annotations

import click

from modinstall.cli.common import build_config, build_registry, config_options
from modinstall.core.models import RunSummary
from modinstall.services.dispatcher import SUMMARY_LINE, Dispatcher, Plan


def register(main: click.Group) -> None:
    """注册安装相关命令"""
    main.add_command(install)
    main.add_command(plan)


def _echo_plan(plan: Plan) -> None:
    for e in plan.entries:
        state = "已安装" if e.installed else "待安装"
        unmet = f"  缺少依赖: {', '.join(e.unmet)}" if e.unmet else ""
        click.echo(f"  {e.token:12s} -> {e.name:10s} [{state}]{unmet}")
        if e.error:
            click.echo(f"  {'':12s}    {e.error}")
    for token in plan.unknown:
        click.echo(f"  {token:12s} -> 未知的包（将跳过）")


def _echo_summary(summary: RunSummary, profile: str) -> None:
    click.echo("")
    for r in summary.results:
        mark = "OK" if r.success else "FAIL"
        click.echo(f"  [{mark:4s}] {r.display_name:28s} {r.stage.value:10s} {r.message}")
    for token in summary.unknown:
        click.echo(f"  [SKIP] {token:28s} 未知的包")
    click.echo(SUMMARY_LINE)
    if summary.succeeded:
        click.echo(f"If you added new modules, run: source {profile}")


@click.command()
@click.argument("tokens", nargs=-1)
@config_options
@click.option("--jobs", "-j", type=int, default=None, help="make 并行度（默认 CPU 核数）")
@click.option("--strict/--continue", "strict", default=None,
              help="任一包失败时以非 0 退出（默认继续并以 0 退出）")
@click.option("--with-deps", is_flag=True, help="按依赖顺序补装尚未安装的前置包")
@click.pass_context
def install(
    ctx: click.Context, tokens: tuple[str, ...], config_path: str,
    manifest: str | None, profile: str | None, install_loc: str | None,
    jobs: int | None, strict: bool | None, with_deps: bool,
) -> None:
    """安装一个或多个包，例如: modinstall install OPENMPI FFTW OpenBLAS LAPACK scalapack hdf5 qe"""
    if not tokens:
        click.echo(ctx.get_usage())
        click.echo("Example: modinstall install OPENMPI FFTW OpenBLAS LAPACK scalapack hdf5 qe")
        ctx.exit(1)

    cfg = build_config(
        config_path, manifest=manifest, profile=profile,
        install_loc=install_loc, jobs=jobs, fail_on_error=strict,
    )
    dispatcher = Dispatcher(cfg, registry=build_registry(cfg))
    summary = dispatcher.dispatch(list(tokens), with_deps=with_deps)
    _echo_summary(summary, str(cfg.profile_path))
    ctx.exit(summary.exit_code(strict=cfg.fail_on_error))


@click.command()
@click.argument("tokens", nargs=-1, required=True)
@config_options
@click.option("--with-deps", is_flag=True, help="展开传递依赖")
def plan(
    tokens: tuple[str, ...], config_path: str, manifest: str | None,
    profile: str | None, install_loc: str | None, with_deps: bool,
) -> None:
    """检查请求的包及其依赖，不执行构建"""
    cfg = build_config(config_path, manifest=manifest, profile=profile, install_loc=install_loc)
    dispatcher = Dispatcher(cfg, registry=build_registry(cfg))
    result = dispatcher.plan(list(tokens), with_deps=with_deps)
    _echo_plan(result)
    if not result.ok:
        click.echo("存在未满足的依赖，可加 --with-deps 自动补装。")
