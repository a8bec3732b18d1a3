# -*- coding: utf-8 -*-
"""
全局控制台配置模块
该模块管理smartup的共享终端状态。
包含：
- 带有自定义主题的rich控制台
- colorama初始化（Windows终端彩色输出）
"""
import colorama
from rich.console import Console
from rich.theme import Theme

# 初始化colorama以支持跨平台的彩色文本
colorama.init()

# 使用自定义主题配置rich控制台
custom_theme = Theme(
    {
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red",
        "SUCCESS": "green",
        "RESULT": "blue",
        "PROGRESS": "white",
        "DEBUG": "grey58",
        "critical": "bold red",
        "breaking": "red",
        "moderate": "yellow",
        "safe": "green",
    }
)
console = Console(theme=custom_theme)
