"""统一异常体系

所有业务异常继承 ModinstallError，替代散落的 ValueError / RuntimeError。
安装器内部据此把失败转换为 InstallResult，CLI 层据此输出友好提示。
"""

from __future__ import annotations


class ModinstallError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ModinstallError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class PackageNotFoundError(ModinstallError):
    """指定的包名或命令行 token 不在注册表中"""

    code = "PACKAGE_NOT_FOUND"


class ArchiveNotFoundError(ModinstallError):
    """源码包或源码目录不存在"""

    code = "ARCHIVE_NOT_FOUND"


class DependencyError(ModinstallError):
    """前置依赖包未安装"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class ExtractionError(ModinstallError):
    """源码包解压失败"""

    code = "EXTRACTION_ERROR"


class DownloadError(ModinstallError):
    """源码包下载失败"""

    code = "DOWNLOAD_ERROR"


class ExecutionError(ModinstallError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"


class ValidationError(ModinstallError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []
