# -*- coding: utf-8 -*-
"""
输入处理模块
该模块提供了处理smartup交互式输入的工具。
包含：
- 是/否确认
- 多选（选择要更新的包）
- 单选（选择要回滚的快照）
非交互终端下全部返回默认值。
"""
import sys
from typing import List, Optional, Sequence, Tuple, TypeVar

from prompt_toolkit import prompt
from prompt_toolkit.shortcuts import checkboxlist_dialog, radiolist_dialog

T = TypeVar("T")


def is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def user_confirm(tip: str, default: bool = True) -> bool:
    """提示用户确认是/否问题"""
    if not is_interactive():
        return default
    try:
        suffix = "[Y/n]" if default else "[y/N]"
        ret = prompt(f"{tip} {suffix}: ").strip()
        return default if ret == "" else ret.lower() in ("y", "yes")
    except (KeyboardInterrupt, EOFError):
        return False


def select_many(
    title: str,
    text: str,
    values: Sequence[Tuple[T, str]],
    default_values: Optional[Sequence[T]] = None,
) -> List[T]:
    """多选对话框，取消时返回空列表"""
    if not is_interactive():
        return list(default_values or [])
    result = checkboxlist_dialog(
        title=title,
        text=text,
        values=list(values),
        default_values=list(default_values or []),
    ).run()
    return list(result or [])


def select_one(
    title: str,
    text: str,
    values: Sequence[Tuple[T, str]],
) -> Optional[T]:
    """单选对话框，取消或非交互时返回None"""
    if not is_interactive() or not values:
        return None
    return radiolist_dialog(title=title, text=text, values=list(values)).run()
