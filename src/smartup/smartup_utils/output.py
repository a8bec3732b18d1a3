# -*- coding: utf-8 -*-
"""
输出格式化模块
该模块为smartup提供终端输出工具。
包含：
- 用于分类不同输出类型的OutputType枚举
- 输出事件与输出后端（Sink）抽象，便于在测试中替换控制台
- 用于格式化和显示样式化输出的PrettyOutput类
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.panel import Panel
from rich.text import Text

from smartup.smartup_utils.globals import console


class OutputType(Enum):
    """
    输出类型枚举，用于分类和样式化不同类型的消息。

    属性：
        INFO: 系统提示
        SUCCESS: 成功信息
        WARNING: 警告信息
        ERROR: 错误信息
        RESULT: 命令结果
        PROGRESS: 执行进度
        DEBUG: 调试信息
    """

    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    RESULT = "RESULT"
    PROGRESS = "PROGRESS"
    DEBUG = "DEBUG"


@dataclass
class OutputEvent:
    """
    输出事件的通用结构，供不同输出后端（Sink）消费。
    - text: 文本内容
    - output_type: 输出类型
    - timestamp: 是否显示时间戳
    - section: 若为章节标题输出，填入标题文本；否则为None
    - context: 额外上下文（例如快照ID、包名）
    """

    text: str
    output_type: OutputType
    timestamp: bool = False
    section: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class OutputSink(ABC):
    """输出后端抽象接口，不同前端（控制台/日志/测试）实现该接口以消费输出事件。"""

    @abstractmethod
    def emit(self, event: OutputEvent) -> None:  # pragma: no cover - 抽象方法
        raise NotImplementedError


class ConsoleOutputSink(OutputSink):
    """默认控制台输出实现。"""

    def emit(self, event: OutputEvent) -> None:
        if event.section is not None:
            text = Text(event.section, style=event.output_type.value, justify="center")
            console.print(Panel(text, border_style=event.output_type.value))
            return

        header = PrettyOutput._format(event.output_type, event.timestamp)
        line = Text(header, style=event.output_type.value)
        line.append(event.text)
        console.print(line)


# 模块级输出分发器（默认注册控制台后端）
_output_sinks: List[OutputSink] = [ConsoleOutputSink()]


def emit_output(event: OutputEvent) -> None:
    """向所有已注册的输出后端广播事件。"""
    for sink in list(_output_sinks):
        try:
            sink.emit(event)
        except Exception as e:
            # 后端故障不影响其他后端
            console.print(f"[output sink error] {sink.__class__.__name__}: {e}")


class PrettyOutput:
    """
    使用rich库格式化和显示输出的类。

    所有输出先封装为OutputEvent，再分发给已注册的输出后端。
    """

    # 不同输出类型的图标
    _ICONS = {
        OutputType.INFO: "ℹ️",
        OutputType.SUCCESS: "✅",
        OutputType.WARNING: "⚠️",
        OutputType.ERROR: "❌",
        OutputType.RESULT: "✨",
        OutputType.PROGRESS: "⏳",
        OutputType.DEBUG: "🔍",
    }

    @staticmethod
    def _format(output_type: OutputType, timestamp: bool = False) -> str:
        icon = PrettyOutput._ICONS.get(output_type, "")
        formatted = f"{icon}  "
        if timestamp:
            formatted += f"[{datetime.now().strftime('%H:%M:%S')}] "
        return formatted

    @staticmethod
    def print(
        text: str,
        output_type: OutputType,
        timestamp: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        emit_output(
            OutputEvent(
                text=text,
                output_type=output_type,
                timestamp=timestamp,
                context=context,
            )
        )

    @staticmethod
    def section(title: str, output_type: OutputType = OutputType.INFO) -> None:
        """在样式化面板中打印章节标题。"""
        emit_output(OutputEvent(text="", output_type=output_type, section=title))

    # Sink管理
    @staticmethod
    def add_sink(sink: OutputSink) -> None:
        """注册一个新的输出后端。"""
        _output_sinks.append(sink)

    @staticmethod
    def remove_sink(sink: OutputSink) -> None:
        if sink in _output_sinks:
            _output_sinks.remove(sink)

    @staticmethod
    def get_sinks() -> List[OutputSink]:
        """获取当前已注册的输出后端列表（副本）。"""
        return list(_output_sinks)
