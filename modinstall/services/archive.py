"""源码包解压与源码树清理"""

from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path

from modinstall.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


def extract_archive(archive: Path, dest_dir: Path, src_dir: str, rename_to: str = "") -> Path:
    """解压源码包到 dest_dir，返回（重命名后的）源码目录

    已存在的同名目录会先删除，保证每次都是全新的源码树。

    Raises:
        ExtractionError: 解压失败，或包内不含预期的顶层目录 src_dir
    """
    extracted = dest_dir / src_dir
    target = dest_dir / rename_to if rename_to else extracted
    for stale in {extracted, target}:
        if stale.exists():
            logger.info("  删除残留源码目录: %s", stale)
            remove_tree(stale)

    try:
        with tarfile.open(archive) as tf:
            top_level = {m.name.removeprefix("./").split("/", 1)[0] for m in tf.getmembers()}
            if src_dir not in top_level:
                raise ExtractionError(
                    f"{archive.name} 中不含目录 {src_dir} (实际: {', '.join(sorted(top_level))})",
                )
            tf.extractall(path=str(dest_dir), filter="data")  # noqa: S202
    except (OSError, tarfile.TarError) as e:
        remove_tree(extracted)
        raise ExtractionError(f"解压失败 {archive.name}: {e}") from e

    if not extracted.is_dir():
        raise ExtractionError(f"{archive.name} 解压后未找到目录 {src_dir}")

    if rename_to:
        extracted.rename(target)
    logger.info("  解压就绪: %s -> %s", archive.name, target)
    return target


def remove_tree(path: Path) -> bool:
    """尽力删除源码树，失败只记录日志"""
    if not path.exists():
        return True
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.warning("  清理失败 %s: %s", path, e)
        return False
    return True
