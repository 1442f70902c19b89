"""集中配置管理

替代原来散落的全局环境变量（INSTALL_LOC / INSTALL_NWCHEM），提供统一的配置入口。
加载顺序: 默认值 -> YAML 文件 -> 环境变量 -> 编程式覆盖（CLI 选项）。
配置对象显式传递给安装器和分派器，而不是在各处读取环境。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from modinstall.core.exceptions import ConfigError
from modinstall.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/default.yml"

# 环境变量 -> 配置字段
ENV_OVERRIDES: dict[str, str] = {
    "INSTALL_LOC": "install_loc",
    "INSTALL_NWCHEM": "install_nwchem",
    "MODINSTALL_PROFILE": "profile",
    "MODINSTALL_ARCHIVE_DIR": "archive_dir",
    "MODINSTALL_MANIFEST": "manifest",
}


@dataclass
class Config:
    """安装全局配置"""

    # 目录
    install_loc: str = "~/modules"
    install_nwchem: str = "~/nwchem"
    profile: str = "~/.bashrc"
    archive_dir: str = "."
    manifest: str = ""          # 可选的包清单覆盖文件

    # 执行
    jobs: int = 0               # make -j 并行度，0 表示 os.cpu_count()
    build_timeout: int = 0      # 单个包构建超时（秒），0 表示不限
    fail_on_error: bool = False  # True 时任一包失败则进程退出码非 0

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (OSError, ValueError) as e:
            raise ConfigError(f"读取配置文件失败: {path} ({e})") from e
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def with_env(self, environ: dict[str, str] | None = None) -> Config:
        """返回应用了环境变量覆盖后的新配置"""
        env = os.environ if environ is None else environ
        overrides = {
            attr: env[var] for var, attr in ENV_OVERRIDES.items() if env.get(var)
        }
        if overrides:
            logger.debug("环境变量覆盖: %s", ", ".join(sorted(overrides)))
        return replace(self, **overrides)

    def with_overrides(self, **overrides: Any) -> Config:
        """返回应用了非空覆盖项（通常来自 CLI 选项）的新配置"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # ---- 派生值 ----

    @property
    def install_root(self) -> Path:
        return Path(self.install_loc).expanduser()

    @property
    def nwchem_root(self) -> Path:
        return Path(self.install_nwchem).expanduser()

    @property
    def profile_path(self) -> Path:
        return Path(self.profile).expanduser()

    @property
    def archive_path(self) -> Path:
        return Path(self.archive_dir).expanduser()

    @property
    def effective_jobs(self) -> int:
        return self.jobs if self.jobs > 0 else (os.cpu_count() or 1)

    def template_vars(self) -> dict[str, Any]:
        """包描述模板中可用的全局占位符"""
        return {
            "install_loc": str(self.install_root),
            "install_nwchem": str(self.nwchem_root),
            "jobs": self.effective_jobs,
        }


def load_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件加载配置并应用环境变量覆盖"""
    cfg = Config.from_file(path).with_env()
    logger.debug("配置已加载: %s", path)
    return cfg
