"""安装服务模块

拆分说明:
- profile.py: shell profile 幂等更新
- archive.py: 源码包解压与清理
- runner.py: 构建命令执行与失败隔离
- installer.py: 通用五步安装流程
- dispatcher.py: token 分派与汇总
"""

from modinstall.services.dispatcher import Dispatcher
from modinstall.services.installer import PackageInstaller
from modinstall.services.profile import ProfileUpdater
from modinstall.services.runner import InstallRunner

__all__ = ["Dispatcher", "PackageInstaller", "ProfileUpdater", "InstallRunner"]
