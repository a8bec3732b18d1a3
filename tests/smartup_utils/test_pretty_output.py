# -*- coding: utf-8 -*-
"""smartup_utils.output 模块单元测试"""

import pytest

from smartup.smartup_utils.output import (
    OutputEvent,
    OutputSink,
    OutputType,
    PrettyOutput,
    emit_output,
)


class BrokenSink(OutputSink):
    def emit(self, event: OutputEvent) -> None:
        raise RuntimeError("sink down")


@pytest.fixture
def sink(recording_sink):
    PrettyOutput.add_sink(recording_sink)
    yield recording_sink
    PrettyOutput.remove_sink(recording_sink)


class TestPrettyOutput:
    """测试 PrettyOutput 的事件分发"""

    def test_print_reaches_registered_sink(self, sink):
        PrettyOutput.print("Snapshot created", OutputType.SUCCESS, context={"snapshot_id": "s1"})

        event = sink.events[-1]
        assert event.text == "Snapshot created"
        assert event.output_type is OutputType.SUCCESS
        assert event.context == {"snapshot_id": "s1"}
        assert event.section is None

    def test_section_event(self, sink):
        PrettyOutput.section("Test Results", OutputType.RESULT)
        assert sink.events[-1].section == "Test Results"
        assert sink.events[-1].output_type is OutputType.RESULT

    def test_remove_sink(self, recording_sink):
        PrettyOutput.add_sink(recording_sink)
        PrettyOutput.remove_sink(recording_sink)
        PrettyOutput.print("ignored", OutputType.INFO)
        assert recording_sink.events == []
        assert recording_sink not in PrettyOutput.get_sinks()

    def test_broken_sink_does_not_block_others(self, sink):
        broken = BrokenSink()
        PrettyOutput.add_sink(broken)
        try:
            emit_output(OutputEvent(text="still delivered", output_type=OutputType.INFO))
        finally:
            PrettyOutput.remove_sink(broken)
        assert sink.texts[-1] == "still delivered"

    def test_format_header(self):
        assert PrettyOutput._format(OutputType.ERROR) == "❌  "
        assert PrettyOutput._format(OutputType.INFO, timestamp=True).startswith("ℹ️  [")
