"""modinstall - 科学计算软件栈本地编译安装工具"""

__version__ = "0.3.0"
