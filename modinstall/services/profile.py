"""Shell profile 更新器

每个包在 profile（默认 ~/.bashrc）中至多占一个标记块:

    # ===== OpenBLAS 0.3.30 =====
    export PATH="<prefix>/bin:$PATH"
    export LD_LIBRARY_PATH="<prefix>/lib:$LD_LIBRARY_PATH"
    export CPATH="<prefix>/include:$CPATH"
    export LIBRARY_PATH="<prefix>/lib:$LIBRARY_PATH"

标记行已存在时不再写入，重复执行保持幂等。块只追加，不改写已有内容。
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from modinstall.utils.yaml_io import read_text

logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(r"^# ===== (.+) =====$", re.MULTILINE)

# (变量名, 前缀下的子目录)
EXPORTS: tuple[tuple[str, str], ...] = (
    ("PATH", "bin"),
    ("LD_LIBRARY_PATH", "lib"),
    ("CPATH", "include"),
    ("LIBRARY_PATH", "lib"),
)


def marker_line(name: str) -> str:
    return f"# ===== {name} ====="


def render_block(name: str, prefix: str | Path) -> str:
    """生成单个包的 profile 块（前导空行 + 标记行 + 四行 export）"""
    lines = ["", marker_line(name)]
    lines += [f'export {var}="{prefix}/{sub}:${var}"' for var, sub in EXPORTS]
    return "\n".join(lines) + "\n"


class ProfileUpdater:
    """幂等地向 shell profile 追加环境变量块"""

    def __init__(self, profile_path: Path) -> None:
        self.profile_path = profile_path

    def has_entry(self, name: str) -> bool:
        return marker_line(name) in read_text(self.profile_path).splitlines()

    def entries(self) -> list[str]:
        """profile 中已存在标记块的包名（按出现顺序）"""
        return _MARKER_RE.findall(read_text(self.profile_path))

    def update(self, name: str, prefix: str | Path) -> bool:
        """确保 profile 中存在 name 的标记块

        以追加方式写入，profile 为符号链接时写到链接目标。
        返回 False 表示写入失败（调用方只告警，不升级为错误）。
        """
        try:
            if self.has_entry(name):
                logger.info("%s 已包含 %s 的条目，跳过追加", self.profile_path, name)
                return True

            logger.info("更新 %s: %s", self.profile_path, name)
            content = read_text(self.profile_path)
            self.profile_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.profile_path, "a", encoding="utf-8") as f:
                if content and not content.endswith("\n"):
                    f.write("\n")
                f.write(render_block(name, prefix))
        except OSError as e:
            logger.warning("写入 %s 失败 (%s): %s", self.profile_path, name, e)
            return False
        return True
